"""Financial limit codec.

Limits travel on the wire and in stored matrices as a flat mapping keyed by
``task-{task_id}-{role}-{employee_id}`` with ``{"min": ..., "max": ...}``
values. Changing the key format breaks previously stored data.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Collection, Iterable, Mapping
from decimal import Decimal, InvalidOperation

from raciflow.engine.types import FinancialLimit, LimitKey, RaciRole, RoleAssignment

logger = logging.getLogger(__name__)

LIMIT_KEY_PATTERN = re.compile(r"^task-(\d+)-(responsible|accountable|consulted|informed)-(\d+)$")

# Matches the Numeric(14, 2) limit columns.
AMOUNT_QUANTUM = Decimal("0.01")
AMOUNT_CEILING = Decimal(10) ** 12


def format_limit_key(task_id: int, role: RaciRole | str, employee_id: int) -> str:
    return f"task-{int(task_id)}-{RaciRole.from_wire(role).value}-{int(employee_id)}"


def parse_limit_key(key: str) -> LimitKey | None:
    match = LIMIT_KEY_PATTERN.match(key) if isinstance(key, str) else None
    if match is None:
        return None
    task_id, role, employee_id = match.groups()
    return LimitKey(task_id=int(task_id), role=RaciRole(role), employee_id=int(employee_id))


def coerce_amount(value: object) -> Decimal | None:
    """Parse one bound; ``None`` and blank strings mean "not supplied".

    Raises ``ValueError`` for non-numeric, non-finite or negative input and
    for amounts the limit columns cannot store exactly.
    """

    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValueError(f"Limit value must be numeric, got {value!r}.")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Limit value must be numeric, got {value!r}.") from exc
    if not amount.is_finite():
        raise ValueError(f"Limit value must be finite, got {value!r}.")
    if amount < 0:
        raise ValueError(f"Limit value must be greater or equal zero, got {value!r}.")
    if amount >= AMOUNT_CEILING:
        raise ValueError(f"Limit value must be less than {AMOUNT_CEILING:,}, got {value!r}.")
    if amount != amount.quantize(AMOUNT_QUANTUM):
        raise ValueError(f"Limit value must have at most two decimal places, got {value!r}.")
    return amount


def limit_bounds(raw: object) -> tuple[object, object]:
    """Extract raw ``(min, max)`` values from a wire object or a parsed limit."""

    if isinstance(raw, FinancialLimit):
        return raw.min_amount, raw.max_amount
    if isinstance(raw, Mapping):
        return raw.get("min"), raw.get("max")
    raise ValueError(f"Limit must be an object with min/max, got {raw!r}.")


def encode_limits(limits: Mapping[LimitKey, FinancialLimit]) -> dict[str, dict[str, str | None]]:
    return {
        format_limit_key(key.task_id, key.role, key.employee_id): limit.to_wire()
        for key, limit in sorted(limits.items())
    }


def index_limit_payload(payload: Mapping[str, object] | None) -> dict[LimitKey, object]:
    """Parse composite keys, keeping raw values. Malformed keys are skipped."""

    if not payload:
        return {}
    if not isinstance(payload, Mapping):
        logger.warning("Ignoring financial limits payload of type %s", type(payload).__name__)
        return {}

    indexed: dict[LimitKey, object] = {}
    for raw_key, raw_value in payload.items():
        key = parse_limit_key(raw_key)
        if key is None:
            logger.warning("Ignoring financial limit with malformed key %r", raw_key)
            continue
        indexed[key] = raw_value
    return indexed


def decode_limits(
    entries: Mapping[LimitKey, object],
    *,
    assignments: Iterable[RoleAssignment] | None = None,
) -> dict[LimitKey, FinancialLimit]:
    """Leniently parse limit values for display and read paths.

    Entries that cannot be parsed, that sit on a role without limits, or
    that have no matching assignment (when ``assignments`` is given) are
    dropped.
    """

    owners: Collection[LimitKey] | None = None
    if assignments is not None:
        owners = {LimitKey(item.task_id, item.role, item.employee_id) for item in assignments}

    decoded: dict[LimitKey, FinancialLimit] = {}
    for key, raw in entries.items():
        if not key.role.carries_limits:
            logger.warning("Dropping financial limit on %s role for task %s", key.role.value, key.task_id)
            continue
        if owners is not None and key not in owners:
            logger.info(
                "Dropping orphan financial limit %s",
                format_limit_key(key.task_id, key.role, key.employee_id),
            )
            continue
        try:
            raw_min, raw_max = limit_bounds(raw)
            min_amount = coerce_amount(raw_min)
            max_amount = coerce_amount(raw_max)
        except ValueError as exc:
            logger.warning(
                "Dropping unparseable financial limit %s: %s",
                format_limit_key(key.task_id, key.role, key.employee_id),
                exc,
            )
            continue
        if min_amount is None and max_amount is None:
            continue
        if min_amount is not None and max_amount is not None and min_amount > max_amount:
            logger.warning(
                "Dropping financial limit %s with min greater than max",
                format_limit_key(key.task_id, key.role, key.employee_id),
            )
            continue
        decoded[key] = FinancialLimit(min_amount=min_amount, max_amount=max_amount)
    return decoded


def decode_limit_payload(
    payload: Mapping[str, object] | None,
    *,
    assignments: Iterable[RoleAssignment] | None = None,
) -> dict[LimitKey, FinancialLimit]:
    return decode_limits(index_limit_payload(payload), assignments=assignments)
