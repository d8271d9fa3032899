"""Fixed-offset decoder for the battle program's account layout.

The layout mirrors the on-chain struct byte for byte. Reordering an entry or
changing a width is a schema change, not a refactor.
"""

from __future__ import annotations

import base64
import struct
from dataclasses import dataclass
from typing import Any, Literal

from app.domain import DecodedAccountRecord

FieldKind = Literal["skip", "u8_bool", "u32", "u64", "i64"]

TOKEN_DECIMALS_DIVISOR = 1_000_000
LAMPORTS_PER_SOL = 1_000_000_000

_STRUCT_FORMATS: dict[str, str] = {
    "u8_bool": "<B",
    "u32": "<I",
    "u64": "<Q",
    "i64": "<q",
}


class MalformedRecordError(ValueError):
    """Raised when an account buffer does not match the expected layout."""


@dataclass(frozen=True, slots=True)
class AccountField:
    name: str
    width: int
    kind: FieldKind
    divisor: int = 1


BATTLE_ACCOUNT_LAYOUT: tuple[AccountField, ...] = (
    AccountField("discriminator", 8, "skip"),
    AccountField("battle_id", 8, "u64"),
    AccountField("bumps", 4, "skip"),
    AccountField("start_time", 8, "i64"),
    AccountField("end_time", 8, "i64"),
    # artist wallets, artist mints and the treasury; re-derived elsewhere
    AccountField("addresses", 32 * 5, "skip"),
    AccountField("side_a_supply", 8, "u64", TOKEN_DECIMALS_DIVISOR),
    AccountField("side_b_supply", 8, "u64", TOKEN_DECIMALS_DIVISOR),
    AccountField("side_a_balance", 8, "u64", LAMPORTS_PER_SOL),
    AccountField("side_b_balance", 8, "u64", LAMPORTS_PER_SOL),
    AccountField("internal_pools", 16, "skip"),
    AccountField("winner_is_side_a", 1, "u8_bool"),
    AccountField("winner_decided", 1, "u8_bool"),
    AccountField("transaction_state", 1, "skip"),
    AccountField("is_initialized", 1, "skip"),
    AccountField("is_active", 1, "u8_bool"),
    AccountField("total_distribution", 8, "u64", LAMPORTS_PER_SOL),
)

BATTLE_ACCOUNT_MIN_LENGTH = sum(entry.width for entry in BATTLE_ACCOUNT_LAYOUT)


def decode_fields(
    data: bytes, layout: tuple[AccountField, ...] = BATTLE_ACCOUNT_LAYOUT
) -> dict[str, Any]:
    """Walk ``layout`` over ``data`` and return the decoded, scaled values."""

    required = sum(entry.width for entry in layout)
    if len(data) < required:
        raise MalformedRecordError(
            f"account data is {len(data)} bytes; layout requires at least {required}"
        )

    values: dict[str, Any] = {}
    offset = 0
    for entry in layout:
        if entry.kind != "skip":
            (raw,) = struct.unpack_from(_STRUCT_FORMATS[entry.kind], data, offset)
            if entry.kind == "u8_bool":
                values[entry.name] = raw == 1
            elif entry.divisor != 1:
                values[entry.name] = raw / entry.divisor
            else:
                values[entry.name] = raw
        offset += entry.width
    return values


def decode_battle_account(data: bytes, *, now_ms: int) -> DecodedAccountRecord:
    values = decode_fields(data)
    start_ms = values["start_time"] * 1000
    end_ms = values["end_time"] * 1000
    is_active = values["is_active"]
    return DecodedAccountRecord(
        battle_id=values["battle_id"],
        start_time=start_ms,
        end_time=end_ms,
        is_active=is_active,
        is_ended=not is_active or now_ms > end_ms,
        side_a_balance=values["side_a_balance"],
        side_b_balance=values["side_b_balance"],
        side_a_supply=values["side_a_supply"],
        side_b_supply=values["side_b_supply"],
        winner_is_side_a=values["winner_is_side_a"],
        winner_decided=values["winner_decided"],
        total_distribution=values["total_distribution"],
    )


def decode_account_data(raw: Any) -> bytes:
    """Decode the ``data`` member of a ``getAccountInfo`` response.

    Accepts the ``[payload, "base64"]`` pair the RPC returns, or a bare
    base64 string.
    """

    if isinstance(raw, (list, tuple)):
        if len(raw) != 2 or raw[1] != "base64":
            raise MalformedRecordError(f"unsupported account data encoding: {raw[1:]!r}")
        raw = raw[0]
    if not isinstance(raw, str):
        raise MalformedRecordError("account data must be a base64 string")
    try:
        return base64.b64decode(raw, validate=True)
    except ValueError as exc:
        raise MalformedRecordError("account data is not valid base64") from exc
