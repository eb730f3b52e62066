"""Tests for vestake.services._helpers."""

import json

import pytest

from builders import key
from vestake.services._helpers import (
    dump_json,
    encode_pubkey,
    epoch_start_ts,
    format_dnt,
    format_hnt,
    format_vehnt,
    now_iso,
    parse_pubkey,
    percentage,
    ts_to_iso,
    utc_day,
)
from vestake.services.errors import InvalidPubkeyError


def test_now_iso_format() -> None:
    ts: str = now_iso()
    assert "T" in ts
    assert ts.endswith("+00:00")


def test_ts_to_iso() -> None:
    assert ts_to_iso(0) == "1970-01-01T00:00:00+00:00"
    assert ts_to_iso(None) is None


def test_epoch_numbering() -> None:
    assert utc_day(19_500 * 86_400 + 86_399) == 19_500
    assert epoch_start_ts(19_500) == 19_500 * 86_400


def test_parse_pubkey_roundtrip() -> None:
    assert str(parse_pubkey(key(7))) == key(7)
    assert encode_pubkey(bytes([7]) * 32) == key(7)


@pytest.mark.parametrize("value", ["", "not-a-key", "0OIl", "abc"])
def test_parse_pubkey_rejects(value: str) -> None:
    with pytest.raises(InvalidPubkeyError, match="not a valid base58"):
        parse_pubkey(value)


def test_formatting() -> None:
    assert format_hnt(123_456_789_000_000) == "1,234,567"
    assert format_dnt(5_000_000) == "5"
    assert format_vehnt(3 * 10**8 * 10**12) == "3"
    assert percentage(1, 4) == "25.00"
    assert percentage(1, 0) == "0.00"


def test_dump_json_handles_non_serializable() -> None:
    from datetime import date

    raw: str = dump_json({"d": date(2026, 1, 1)})
    parsed: dict[str, object] = json.loads(raw)
    assert parsed["d"] == "2026-01-01"
