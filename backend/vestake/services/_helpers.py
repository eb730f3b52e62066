"""Shared utilities for the service layer."""

import json
import time
from collections.abc import Mapping
from datetime import UTC, datetime

from solders.pubkey import Pubkey

from vestake.services.errors import InvalidPubkeyError

JsonDict = dict[str, object]
Serializable = Mapping[str, object] | list[Mapping[str, object]]

# Fixed-point scale carried by precise voting weights and utility scores.
PRECISION_FACTOR: int = 10**12
# Denominator of the registrar's scaled vote-weight factors.
SCALED_FACTOR_BASE: int = 10**9

SECS_PER_DAY: int = 86_400
FIRST_EPOCH: int = 19_465
FIRST_EPOCH_WITH_VEHNT: int = 19_467

U64_MAX: int = 2**64 - 1
U128_MAX: int = 2**128 - 1

TOKEN_DIVIDER: int = 10**8  # HNT base units
DNT_DIVIDER: int = 10**6  # IOT / MOBILE base units


def now_ts() -> int:
    return int(time.time())


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def ts_to_iso(ts: int | None) -> str | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, UTC).isoformat()


def utc_day(ts: int) -> int:
    """Day index since the unix epoch, the same numbering epochs use."""
    return ts // SECS_PER_DAY


def epoch_start_ts(epoch: int) -> int:
    return epoch * SECS_PER_DAY


def parse_pubkey(value: str) -> Pubkey:
    """Parse a base58 key. Raises InvalidPubkeyError."""
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise InvalidPubkeyError(f'"{value}" is not a valid base58 encoded Solana pubkey') from e


def encode_pubkey(raw: bytes) -> str:
    return str(Pubkey(raw))


def format_units(amount: int, divider: int) -> str:
    """Whole tokens with thousands separators, e.g. 123456789000000 / 10^8 -> '1,234,567'."""
    return f"{amount // divider:,}"


def format_hnt(amount: int) -> str:
    return format_units(amount, TOKEN_DIVIDER)


def format_dnt(amount: int) -> str:
    return format_units(amount, DNT_DIVIDER)


def format_vehnt(weight: int) -> str:
    """Precise veHNT weight as whole tokens."""
    return format_units(weight, TOKEN_DIVIDER * PRECISION_FACTOR)


def percentage(part: int, whole: int) -> str:
    if whole == 0:
        return "0.00"
    return f"{part / whole * 100:.2f}"


def dump_json(obj: Serializable) -> str:
    return json.dumps(obj, default=str)
