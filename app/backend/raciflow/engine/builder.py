"""Matrix builder shared by the create, update and approval flows."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from raciflow.engine.limits import decode_limits, encode_limits, index_limit_payload
from raciflow.engine.types import (
    ROLE_ORDER,
    EmployeeRef,
    FinancialLimit,
    LimitKey,
    Matrix,
    MatrixCandidate,
    RaciRole,
    RoleAssignment,
    SlotSelection,
    TaskRow,
)
from raciflow.engine.validator import normalize_assignments

logger = logging.getLogger(__name__)


def resolve_employee_pool(
    event_employees: Sequence[EmployeeRef],
    department_employees: Sequence[EmployeeRef],
) -> tuple[EmployeeRef, ...]:
    """Employees assignable on an event.

    Explicit event employees win; otherwise the department roster is used.
    An empty pool is valid, the matrix just cannot be assigned.
    """

    if event_employees:
        return tuple(event_employees)
    if department_employees:
        return tuple(department_employees)
    logger.info("No event or department employees available; matrix is not assignable")
    return ()


def _first_present(mapping: Mapping[str, object], *names: str) -> object:
    for name in names:
        if name in mapping:
            return mapping[name]
    return None


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def candidate_from_selections(
    *,
    event_id: int,
    tasks: Sequence[TaskRow],
    selections: Iterable[SlotSelection | RoleAssignment],
    financial_limits: Mapping[str, object] | None,
    employees: Sequence[EmployeeRef],
) -> MatrixCandidate:
    """Candidate from an editing session: ordered slot edits plus wire limits."""

    slots = normalize_assignments(selections)
    return MatrixCandidate(
        event_id=event_id,
        tasks=tuple(tasks),
        assignments=[
            RoleAssignment(task_id=task_id, role=role, employee_id=employee_id)
            for (task_id, role), employee_id in slots.items()
        ],
        limits=index_limit_payload(financial_limits),
        employees=tuple(employees),
    )


def candidate_from_payload(
    *,
    event_id: int,
    tasks: Sequence[TaskRow],
    payload: Mapping[str, object],
    employees: Sequence[EmployeeRef],
) -> MatrixCandidate:
    """Candidate from a persisted or submitted matrix payload.

    Each task carries role -> assignee arrays (directly or under ``raci``);
    an assignee is an id or an object with ``id`` and optional
    ``financialLimits``. Only the first assignee of each role becomes the
    active selection.
    """

    assignments: list[RoleAssignment] = []
    limits = index_limit_payload(_first_present(payload, "financial_limits", "financialLimits"))  # type: ignore[arg-type]

    for task_payload in payload.get("tasks") or []:
        if not isinstance(task_payload, Mapping):
            logger.warning("Ignoring malformed task entry in matrix payload")
            continue
        task_id = _as_int(_first_present(task_payload, "task_id", "taskId", "id"))
        if task_id is None:
            logger.warning("Ignoring matrix task entry without a usable id")
            continue

        limits.update(index_limit_payload(_first_present(task_payload, "financial_limits", "financialLimits")))  # type: ignore[arg-type]
        roles_source = task_payload.get("raci")
        if not isinstance(roles_source, Mapping):
            roles_source = task_payload

        for role in ROLE_ORDER:
            assignees = roles_source.get(role.value)
            if not assignees:
                continue
            if not isinstance(assignees, (list, tuple)):
                assignees = [assignees]
            if len(assignees) > 1:
                logger.debug(
                    "Task %s has %d %s assignees; keeping the first",
                    task_id,
                    len(assignees),
                    role.value,
                )

            assignee = assignees[0]
            inline_limit: object = None
            if isinstance(assignee, Mapping):
                inline_limit = _first_present(assignee, "financial_limits", "financialLimits")
                assignee = assignee.get("id")
            employee_id = _as_int(assignee)
            if employee_id is None:
                logger.warning("Ignoring %s assignee %r on task %s", role.value, assignee, task_id)
                continue

            assignments.append(RoleAssignment(task_id=task_id, role=role, employee_id=employee_id))
            if inline_limit:
                limits.setdefault(LimitKey(task_id, role, employee_id), inline_limit)

    return MatrixCandidate(
        event_id=event_id,
        tasks=tuple(tasks),
        assignments=assignments,
        limits=limits,
        employees=tuple(employees),
    )


def candidate_from_rows(
    *,
    event_id: int,
    tasks: Sequence[TaskRow],
    assignments: Iterable[tuple[RoleAssignment, FinancialLimit | None]],
    employees: Sequence[EmployeeRef],
) -> MatrixCandidate:
    """Candidate from stored assignment rows with their attached limits."""

    ordered: list[RoleAssignment] = []
    limits: dict[LimitKey, object] = {}
    for assignment, limit in assignments:
        ordered.append(assignment)
        if limit is not None:
            limits[LimitKey(assignment.task_id, assignment.role, assignment.employee_id)] = limit
    return MatrixCandidate(
        event_id=event_id,
        tasks=tuple(tasks),
        assignments=ordered,
        limits=limits,
        employees=tuple(employees),
    )


def build_matrix(candidate: MatrixCandidate) -> Matrix:
    """Build a matrix for display, dropping whatever does not resolve.

    Unlike validation this never fails: dangling task or employee
    references and unusable limits are logged and left out.
    """

    task_ids = {task.id for task in candidate.tasks}
    pool_ids = {employee.id for employee in candidate.employees}

    slots: dict[tuple[int, RaciRole], int] = {}
    for (task_id, role), employee_id in normalize_assignments(candidate.assignments).items():
        if task_id not in task_ids:
            logger.warning("Dropping %s assignment on unknown task %s", role.value, task_id)
            continue
        if employee_id not in pool_ids:
            logger.warning(
                "Dropping %s assignment on task %s for unknown employee %s",
                role.value,
                task_id,
                employee_id,
            )
            continue
        slots[(task_id, role)] = employee_id

    kept = [
        RoleAssignment(task_id=task_id, role=role, employee_id=employee_id)
        for (task_id, role), employee_id in slots.items()
    ]
    return Matrix(
        event_id=candidate.event_id,
        tasks=candidate.tasks,
        slots=slots,
        limits=decode_limits(candidate.limits, assignments=kept),
        employees=candidate.employees,
    )


def load_matrix(
    *,
    event_id: int,
    tasks: Sequence[TaskRow],
    payload: Mapping[str, object],
    employees: Sequence[EmployeeRef],
) -> Matrix:
    return build_matrix(
        candidate_from_payload(event_id=event_id, tasks=tasks, payload=payload, employees=employees)
    )


def _serialize_employee(employee: EmployeeRef | None, employee_id: int) -> dict[str, object]:
    if employee is None:
        return {"id": employee_id, "name": None, "designation": None, "email": None}
    return {
        "id": employee.id,
        "name": employee.name,
        "designation": employee.designation,
        "email": employee.email,
    }


def matrix_to_payload(matrix: Matrix) -> dict[str, object]:
    """API representation: role arrays per task plus the composite-key limit map."""

    task_rows = []
    for task in matrix.tasks:
        raci: dict[str, list[dict[str, object]]] = {role.value: [] for role in ROLE_ORDER}
        for role, employee_id in matrix.task_slots(task.id).items():
            limit = matrix.limits.get(LimitKey(task.id, role, employee_id))
            raci[role.value].append(
                {
                    **_serialize_employee(matrix.employee(employee_id), employee_id),
                    "financial_limits": limit.to_wire() if limit is not None else None,
                }
            )
        task_rows.append(
            {
                "id": task.id,
                "name": task.name,
                "description": task.description,
                "raci": raci,
            }
        )

    return {
        "event_id": matrix.event_id,
        "tasks": task_rows,
        "financial_limits": encode_limits(matrix.limits),
        "employees": [_serialize_employee(employee, employee.id) for employee in matrix.employees],
    }

