from __future__ import annotations

from decimal import Decimal

from raciflow.engine.builder import (
    build_matrix,
    candidate_from_payload,
    candidate_from_rows,
    candidate_from_selections,
    load_matrix,
    matrix_to_payload,
    resolve_employee_pool,
)
from raciflow.engine.types import (
    EmployeeRef,
    FinancialLimit,
    LimitKey,
    RaciRole,
    RoleAssignment,
    SlotSelection,
    TaskRow,
)

TASKS = (TaskRow(id=7, name="Sound check"), TaskRow(id=8, name="Stage setup"))
ALICE = EmployeeRef(id=41, name="Alice", designation="Coordinator", email="alice@example.test")
BOB = EmployeeRef(id=43, name="Bob", designation="Engineer", email="bob@example.test")
EMPLOYEES = (ALICE, BOB)


def test_employee_pool_prefers_event_employees() -> None:
    assert resolve_employee_pool([BOB], [ALICE, BOB]) == (BOB,)
    assert resolve_employee_pool([], [ALICE, BOB]) == (ALICE, BOB)
    assert resolve_employee_pool([], []) == ()


def test_orphan_limit_key_is_dropped_and_build_succeeds() -> None:
    matrix = load_matrix(
        event_id=1,
        tasks=TASKS,
        payload={
            "tasks": [{"id": 7, "raci": {"responsible": [{"id": 43}]}}],
            "financialLimits": {"task-7-responsible-42": {"min": "0", "max": "10"}},
        },
        employees=EMPLOYEES,
    )

    assert matrix.employee_for(7, RaciRole.RESPONSIBLE) == 43
    assert matrix.limits == {}


def test_payload_accepts_role_arrays_and_inline_limits() -> None:
    candidate = candidate_from_payload(
        event_id=1,
        tasks=TASKS,
        payload={
            "tasks": [
                {
                    "taskId": 7,
                    "responsible": [{"id": 41, "financialLimits": {"min": 0, "max": 5000}}, {"id": 43}],
                    "informed": [43],
                },
                {"task_id": "8", "accountable": 43, "financial_limits": {"task-8-accountable-43": {"max": 99}}},
                {"name": "no id"},
                "garbage",
            ]
        },
        employees=EMPLOYEES,
    )

    assert candidate.assignments == [
        RoleAssignment(7, RaciRole.RESPONSIBLE, 41),
        RoleAssignment(7, RaciRole.INFORMED, 43),
        RoleAssignment(8, RaciRole.ACCOUNTABLE, 43),
    ]
    matrix = build_matrix(candidate)
    assert matrix.limits == {
        LimitKey(7, RaciRole.RESPONSIBLE, 41): FinancialLimit(Decimal("0"), Decimal("5000")),
        LimitKey(8, RaciRole.ACCOUNTABLE, 43): FinancialLimit(None, Decimal("99")),
    }


def test_build_drops_dangling_references() -> None:
    matrix = build_matrix(
        candidate_from_rows(
            event_id=1,
            tasks=TASKS,
            assignments=[
                (RoleAssignment(7, RaciRole.RESPONSIBLE, 41), FinancialLimit(Decimal("1"), Decimal("2"))),
                (RoleAssignment(7, RaciRole.ACCOUNTABLE, 999), None),
                (RoleAssignment(55, RaciRole.INFORMED, 43), None),
            ],
            employees=EMPLOYEES,
        )
    )

    assert dict(matrix.slots) == {(7, RaciRole.RESPONSIBLE): 41}
    assert matrix.limits == {LimitKey(7, RaciRole.RESPONSIBLE, 41): FinancialLimit(Decimal("1"), Decimal("2"))}


def test_rebuilding_from_the_same_inputs_is_identical() -> None:
    payload = {
        "tasks": [
            {"id": 7, "raci": {"responsible": [41], "consulted": [43]}},
            {"id": 8, "raci": {"accountable": [{"id": 41}]}},
        ],
        "financial_limits": {"task-7-responsible-41": {"min": "10", "max": "20"}},
    }

    first = load_matrix(event_id=1, tasks=TASKS, payload=payload, employees=EMPLOYEES)
    second = load_matrix(event_id=1, tasks=TASKS, payload=payload, employees=EMPLOYEES)

    assert first == second
    assert matrix_to_payload(first) == matrix_to_payload(second)


def test_selections_clear_and_replace_slots() -> None:
    matrix = build_matrix(
        candidate_from_selections(
            event_id=1,
            tasks=TASKS,
            selections=[
                SlotSelection(7, RaciRole.RESPONSIBLE, 41),
                SlotSelection(7, RaciRole.ACCOUNTABLE, 41),
                SlotSelection(8, RaciRole.INFORMED, 43),
                SlotSelection(8, RaciRole.INFORMED, None),
            ],
            financial_limits={"task-7-accountable-41": {"min": 5, "max": 6}},
            employees=EMPLOYEES,
        )
    )

    assert dict(matrix.slots) == {(7, RaciRole.ACCOUNTABLE): 41}
    assert matrix.limit_for(RoleAssignment(7, RaciRole.ACCOUNTABLE, 41)) == FinancialLimit(Decimal("5"), Decimal("6"))


def test_matrix_payload_lists_one_employee_per_role() -> None:
    matrix = load_matrix(
        event_id=3,
        tasks=TASKS,
        payload={
            "tasks": [{"id": 7, "raci": {"responsible": [41], "informed": [43]}}],
            "financial_limits": {"task-7-responsible-41": {"min": "0", "max": "5000"}},
        },
        employees=EMPLOYEES,
    )

    payload = matrix_to_payload(matrix)

    task = payload["tasks"][0]
    assert task["id"] == 7
    assert task["raci"]["responsible"] == [
        {
            "id": 41,
            "name": "Alice",
            "designation": "Coordinator",
            "email": "alice@example.test",
            "financial_limits": {"min": "0", "max": "5000"},
        }
    ]
    assert task["raci"]["accountable"] == []
    assert task["raci"]["informed"][0]["financial_limits"] is None
    assert payload["tasks"][1]["raci"] == {role.value: [] for role in RaciRole}
    assert payload["financial_limits"] == {"task-7-responsible-41": {"min": "0", "max": "5000"}}
