"""Assignment validator for candidate RACI matrices."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from raciflow.engine.errors import Violation, ViolationCode
from raciflow.engine.limits import coerce_amount, format_limit_key, limit_bounds
from raciflow.engine.types import (
    ROLE_ORDER,
    FinancialLimit,
    LimitKey,
    Matrix,
    MatrixCandidate,
    RaciRole,
    RoleAssignment,
    SlotSelection,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    matrix: Matrix | None
    violations: tuple[Violation, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.violations


def normalize_assignments(
    assignments: Iterable[RoleAssignment | SlotSelection],
) -> dict[tuple[int, RaciRole], int]:
    """Apply assignments in order into single-selection slots.

    Assigning an employee to a role on a task removes them from every other
    role on that task, and replaces whoever held the slot before. A
    selection with no employee clears its slot.
    """

    slots: dict[tuple[int, RaciRole], int] = {}
    for item in assignments:
        slot = (item.task_id, item.role)
        if item.employee_id is None:
            slots.pop(slot, None)
            continue
        for role in ROLE_ORDER:
            other = (item.task_id, role)
            if role is not item.role and slots.get(other) == item.employee_id:
                del slots[other]
        slots.pop(slot, None)
        slots[slot] = item.employee_id
    return slots


def _limit_violations(key: LimitKey, raw: object) -> tuple[list[Violation], FinancialLimit | None]:
    if not key.role.carries_limits:
        return [
            Violation(
                code=ViolationCode.LIMIT_NOT_APPLICABLE_FOR_ROLE,
                message=f"Financial limits are not applicable to the {key.role.value} role.",
                task_id=key.task_id,
                role=key.role,
                employee_id=key.employee_id,
            )
        ], None

    try:
        raw_min, raw_max = limit_bounds(raw)
    except ValueError as exc:
        return [
            Violation(
                code=ViolationCode.INVALID_LIMIT_VALUE,
                message=str(exc),
                task_id=key.task_id,
                role=key.role,
                employee_id=key.employee_id,
            )
        ], None

    violations: list[Violation] = []
    amounts: dict[str, object] = {}
    for field_name, raw_value in (("min", raw_min), ("max", raw_max)):
        try:
            amounts[field_name] = coerce_amount(raw_value)
        except ValueError as exc:
            violations.append(
                Violation(
                    code=ViolationCode.INVALID_LIMIT_VALUE,
                    message=str(exc),
                    task_id=key.task_id,
                    role=key.role,
                    employee_id=key.employee_id,
                    field=field_name,
                )
            )
    if violations:
        return violations, None

    min_amount = amounts["min"]
    max_amount = amounts["max"]
    if min_amount is not None and max_amount is not None and min_amount > max_amount:
        return [
            Violation(
                code=ViolationCode.INVALID_LIMIT_RANGE,
                message="Financial limit min must be less than or equal to max.",
                task_id=key.task_id,
                role=key.role,
                employee_id=key.employee_id,
            )
        ], None
    if min_amount is None and max_amount is None:
        return [], None
    return [], FinancialLimit(min_amount=min_amount, max_amount=max_amount)


def validate_matrix(candidate: MatrixCandidate) -> ValidationResult:
    """Validate and normalize a candidate into a canonical matrix.

    Returns either the accepted matrix or every violation found; nothing is
    raised for rule violations.
    """

    violations: list[Violation] = []
    task_ids = {task.id for task in candidate.tasks}
    pool_ids = {employee.id for employee in candidate.employees}

    accepted: dict[tuple[int, RaciRole], int] = {}
    for (task_id, role), employee_id in normalize_assignments(candidate.assignments).items():
        if task_id not in task_ids:
            violations.append(
                Violation(
                    code=ViolationCode.UNKNOWN_TASK,
                    message=f"Task {task_id} does not belong to event {candidate.event_id}.",
                    task_id=task_id,
                    role=role,
                    employee_id=employee_id,
                )
            )
            continue
        if employee_id not in pool_ids:
            violations.append(
                Violation(
                    code=ViolationCode.UNKNOWN_EMPLOYEE,
                    message=f"Employee {employee_id} is not in the event employee pool.",
                    task_id=task_id,
                    role=role,
                    employee_id=employee_id,
                )
            )
            continue
        accepted[(task_id, role)] = employee_id

    owned = {LimitKey(task_id, role, employee_id) for (task_id, role), employee_id in accepted.items()}
    limits: dict[LimitKey, FinancialLimit] = {}
    for key, raw in candidate.limits.items():
        limit_violations, limit = _limit_violations(key, raw)
        if limit_violations:
            violations.extend(limit_violations)
            continue
        if limit is None:
            continue
        if key not in owned:
            logger.debug(
                "Dropping financial limit %s without a matching assignment",
                format_limit_key(key.task_id, key.role, key.employee_id),
            )
            continue
        limits[key] = limit

    if violations:
        return ValidationResult(matrix=None, violations=tuple(violations))

    return ValidationResult(
        matrix=Matrix(
            event_id=candidate.event_id,
            tasks=candidate.tasks,
            slots=accepted,
            limits=limits,
            employees=candidate.employees,
        )
    )
