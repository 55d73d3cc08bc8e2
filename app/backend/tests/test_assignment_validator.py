from __future__ import annotations

import itertools
import random
from decimal import Decimal

from raciflow.engine.errors import ViolationCode
from raciflow.engine.types import (
    EmployeeRef,
    FinancialLimit,
    LimitKey,
    MatrixCandidate,
    RaciRole,
    RoleAssignment,
    SlotSelection,
    TaskRow,
)
from raciflow.engine.validator import normalize_assignments, validate_matrix

TASKS = (TaskRow(id=1, name="Venue"), TaskRow(id=2, name="Catering"))
EMPLOYEES = (
    EmployeeRef(id=10, name="Alice", email="alice@example.test"),
    EmployeeRef(id=11, name="Bob", email="bob@example.test"),
    EmployeeRef(id=12, name="Carol", email="carol@example.test"),
)


def _candidate(assignments: list[RoleAssignment], limits: dict | None = None) -> MatrixCandidate:
    return MatrixCandidate(
        event_id=1,
        tasks=TASKS,
        assignments=assignments,
        limits=limits or {},
        employees=EMPLOYEES,
    )


def test_valid_candidate_is_accepted_with_parsed_limits() -> None:
    result = validate_matrix(
        _candidate(
            [
                RoleAssignment(1, RaciRole.RESPONSIBLE, 10),
                RoleAssignment(1, RaciRole.ACCOUNTABLE, 11),
                RoleAssignment(2, RaciRole.INFORMED, 12),
            ],
            {LimitKey(1, RaciRole.RESPONSIBLE, 10): {"min": "0", "max": "5000"}},
        )
    )

    assert result.ok
    matrix = result.matrix
    assert matrix is not None
    assert matrix.employee_for(1, RaciRole.RESPONSIBLE) == 10
    assert matrix.employee_for(1, RaciRole.ACCOUNTABLE) == 11
    assert matrix.employee_for(2, RaciRole.INFORMED) == 12
    assert matrix.limits == {
        LimitKey(1, RaciRole.RESPONSIBLE, 10): FinancialLimit(Decimal("0"), Decimal("5000")),
    }


def test_reassigning_an_employee_moves_them_between_roles() -> None:
    slots = normalize_assignments(
        [
            RoleAssignment(1, RaciRole.RESPONSIBLE, 10),
            RoleAssignment(1, RaciRole.CONSULTED, 10),
        ]
    )

    assert slots == {(1, RaciRole.CONSULTED): 10}


def test_last_selection_wins_for_a_slot_and_none_clears_it() -> None:
    slots = normalize_assignments(
        [
            SlotSelection(1, RaciRole.RESPONSIBLE, 10),
            SlotSelection(1, RaciRole.RESPONSIBLE, 11),
            SlotSelection(2, RaciRole.ACCOUNTABLE, 12),
            SlotSelection(2, RaciRole.ACCOUNTABLE, None),
        ]
    )

    assert slots == {(1, RaciRole.RESPONSIBLE): 11}


def test_no_employee_holds_two_roles_on_a_task_for_random_inputs() -> None:
    rng = random.Random(20261019)
    roles = list(RaciRole)
    for _ in range(200):
        assignments = [
            RoleAssignment(rng.choice([1, 2]), rng.choice(roles), rng.choice([10, 11, 12]))
            for _ in range(rng.randint(0, 12))
        ]
        slots = normalize_assignments(assignments)
        for task_id in (1, 2):
            holders = [employee_id for (slot_task, _), employee_id in slots.items() if slot_task == task_id]
            assert len(holders) == len(set(holders))


def test_validation_is_idempotent_on_accepted_output() -> None:
    first = validate_matrix(
        _candidate(
            [
                RoleAssignment(2, RaciRole.ACCOUNTABLE, 12),
                RoleAssignment(1, RaciRole.INFORMED, 11),
                RoleAssignment(1, RaciRole.RESPONSIBLE, 10),
            ],
            {
                LimitKey(1, RaciRole.RESPONSIBLE, 10): {"min": 5, "max": None},
                LimitKey(2, RaciRole.ACCOUNTABLE, 12): {"min": "1", "max": "2"},
            },
        )
    )
    assert first.ok and first.matrix is not None

    second = validate_matrix(MatrixCandidate.from_matrix(first.matrix))

    assert second.ok
    assert second.matrix == first.matrix


def test_unknown_employee_and_task_are_reported_together() -> None:
    result = validate_matrix(
        _candidate(
            [
                RoleAssignment(1, RaciRole.RESPONSIBLE, 99),
                RoleAssignment(5, RaciRole.ACCOUNTABLE, 10),
            ]
        )
    )

    assert not result.ok
    assert result.matrix is None
    codes = sorted(violation.code for violation in result.violations)
    assert codes == sorted([ViolationCode.UNKNOWN_EMPLOYEE, ViolationCode.UNKNOWN_TASK])


def test_limit_rules_produce_violations() -> None:
    result = validate_matrix(
        _candidate(
            [
                RoleAssignment(1, RaciRole.RESPONSIBLE, 10),
                RoleAssignment(1, RaciRole.CONSULTED, 11),
                RoleAssignment(2, RaciRole.ACCOUNTABLE, 12),
                RoleAssignment(2, RaciRole.RESPONSIBLE, 10),
            ],
            {
                LimitKey(1, RaciRole.CONSULTED, 11): {"min": 0, "max": 10},
                LimitKey(1, RaciRole.RESPONSIBLE, 10): {"min": 900, "max": 100},
                LimitKey(2, RaciRole.ACCOUNTABLE, 12): {"min": "abc", "max": 5},
                LimitKey(2, RaciRole.RESPONSIBLE, 10): "not-an-object",
            },
        )
    )

    by_code = {(violation.code, violation.task_id) for violation in result.violations}
    assert by_code == {
        (ViolationCode.LIMIT_NOT_APPLICABLE_FOR_ROLE, 1),
        (ViolationCode.INVALID_LIMIT_RANGE, 1),
        (ViolationCode.INVALID_LIMIT_VALUE, 2),
    }
    field_violation = next(
        violation
        for violation in result.violations
        if violation.code is ViolationCode.INVALID_LIMIT_VALUE and violation.field is not None
    )
    assert field_violation.field == "min"
    assert field_violation.to_dict()["role"] == "accountable"


def test_limit_without_matching_assignment_is_not_attached() -> None:
    result = validate_matrix(
        _candidate(
            [RoleAssignment(1, RaciRole.RESPONSIBLE, 10)],
            {LimitKey(1, RaciRole.RESPONSIBLE, 11): {"min": 0, "max": 10}},
        )
    )

    assert result.ok and result.matrix is not None
    assert result.matrix.limits == {}


def test_validation_result_does_not_depend_on_unrelated_assignment_order() -> None:
    assignments = [
        RoleAssignment(1, RaciRole.RESPONSIBLE, 10),
        RoleAssignment(1, RaciRole.ACCOUNTABLE, 11),
        RoleAssignment(2, RaciRole.CONSULTED, 12),
    ]
    results = {
        tuple(sorted(validate_matrix(_candidate(list(order))).matrix.slots.items()))
        for order in itertools.permutations(assignments)
    }

    assert len(results) == 1
