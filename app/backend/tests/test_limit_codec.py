from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from raciflow.engine.limits import (
    coerce_amount,
    decode_limit_payload,
    decode_limits,
    encode_limits,
    format_limit_key,
    index_limit_payload,
    parse_limit_key,
)
from raciflow.engine.types import FinancialLimit, LimitKey, RaciRole, RoleAssignment


def test_limit_key_format_is_stable() -> None:
    assert format_limit_key(7, RaciRole.RESPONSIBLE, 42) == "task-7-responsible-42"
    assert format_limit_key(3, "A", 9) == "task-3-accountable-9"
    assert parse_limit_key("task-7-responsible-42") == LimitKey(7, RaciRole.RESPONSIBLE, 42)


@pytest.mark.parametrize(
    "key",
    [
        "task-7-owner-42",
        "task-x-responsible-42",
        "task-7-responsible",
        "7-responsible-42",
        "task-7-Responsible-42",
        "",
    ],
)
def test_parse_limit_key_rejects_malformed_keys(key: str) -> None:
    assert parse_limit_key(key) is None


def test_encode_decode_is_lossless_for_well_formed_keys() -> None:
    limits = {
        LimitKey(1, RaciRole.RESPONSIBLE, 10): FinancialLimit(Decimal("0"), Decimal("5000")),
        LimitKey(1, RaciRole.ACCOUNTABLE, 11): FinancialLimit(None, Decimal("12500.50")),
        LimitKey(2, RaciRole.RESPONSIBLE, 11): FinancialLimit(Decimal("100"), None),
    }

    encoded = encode_limits(limits)

    assert encoded["task-1-responsible-10"] == {"min": "0", "max": "5000"}
    assert encoded["task-1-accountable-11"] == {"min": None, "max": "12500.50"}
    assert decode_limit_payload(encoded) == limits


def test_coerce_amount_treats_blank_as_not_supplied() -> None:
    assert coerce_amount(None) is None
    assert coerce_amount("  ") is None
    assert coerce_amount("250.75") == Decimal("250.75")
    assert coerce_amount(0) == Decimal("0")


@pytest.mark.parametrize("value", ["abc", -1, "-0.01", True, float("nan"), float("inf"), [1]])
def test_coerce_amount_rejects_unusable_values(value: object) -> None:
    with pytest.raises(ValueError):
        coerce_amount(value)


def test_coerce_amount_keeps_only_storable_amounts() -> None:
    assert coerce_amount("12.50") == Decimal("12.5")
    assert coerce_amount("7.000") == Decimal("7")
    assert coerce_amount("999999999999.99") == Decimal("999999999999.99")

    for value in ("0.004", 0.125, "1000000000000", "1e30"):
        with pytest.raises(ValueError):
            coerce_amount(value)


def test_orphan_limit_is_dropped(caplog: pytest.LogCaptureFixture) -> None:
    payload = {
        "task-7-responsible-42": {"min": 0, "max": 100},
        "task-7-responsible-43": {"min": 0, "max": 200},
    }

    with caplog.at_level(logging.INFO, logger="raciflow.engine.limits"):
        decoded = decode_limit_payload(
            payload,
            assignments=[RoleAssignment(task_id=7, role=RaciRole.RESPONSIBLE, employee_id=43)],
        )

    assert decoded == {LimitKey(7, RaciRole.RESPONSIBLE, 43): FinancialLimit(Decimal("0"), Decimal("200"))}
    assert "task-7-responsible-42" in caplog.text


def test_lenient_decode_drops_bad_entries_and_keeps_the_rest() -> None:
    payload = {
        "task-1-responsible-10": {"min": "10", "max": "20"},
        "task-1-consulted-11": {"min": 0, "max": 5},
        "task-1-accountable-12": {"min": "lots", "max": 5},
        "task-2-responsible-10": {"min": 50, "max": 10},
        "task-3-responsible-10": {"min": "", "max": None},
        "not-a-key": {"min": 1, "max": 2},
    }

    decoded = decode_limit_payload(payload)

    assert decoded == {LimitKey(1, RaciRole.RESPONSIBLE, 10): FinancialLimit(Decimal("10"), Decimal("20"))}


def test_index_limit_payload_keeps_raw_values_for_later_validation() -> None:
    indexed = index_limit_payload({"task-1-responsible-10": {"min": "x"}, "bogus": {}})

    assert indexed == {LimitKey(1, RaciRole.RESPONSIBLE, 10): {"min": "x"}}
    assert index_limit_payload(None) == {}


def test_decode_limits_accepts_parsed_limits() -> None:
    key = LimitKey(4, RaciRole.ACCOUNTABLE, 2)
    limit = FinancialLimit(Decimal("1"), Decimal("2"))

    assert decode_limits({key: limit}) == {key: limit}
