from __future__ import annotations

import struct
from dataclasses import dataclass

from solders.pubkey import Pubkey

from app.core.config import Settings, get_settings


@dataclass(frozen=True, slots=True)
class BattleAddresses:
    battle: str
    vault: str


def _battle_id_seed(battle_id: int | str) -> bytes:
    return struct.pack("<Q", int(battle_id))


def derive_program_address(seed: str, battle_id: int | str, program_id: str) -> str:
    """Derive the PDA for ``[seed, u64_le(battle_id)]`` under ``program_id``."""

    address, _bump = Pubkey.find_program_address(
        [seed.encode("utf-8"), _battle_id_seed(battle_id)],
        Pubkey.from_string(program_id),
    )
    return str(address)


def derive_battle_addresses(
    battle_id: int | str, *, settings: Settings | None = None
) -> BattleAddresses:
    settings = settings or get_settings()
    return BattleAddresses(
        battle=derive_program_address(settings.battle_seed, battle_id, settings.program_id),
        vault=derive_program_address(settings.vault_seed, battle_id, settings.program_id),
    )
