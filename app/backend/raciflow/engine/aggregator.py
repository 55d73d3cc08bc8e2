"""Fold approval records into event status and a matrix-shaped view."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from raciflow.engine.types import (
    ROLE_ORDER,
    ApprovalRecordData,
    ApprovalStatus,
    EmployeeRef,
    EventStatus,
    FinancialLimit,
    LimitKey,
    Matrix,
    RaciRole,
    TaskRow,
)

DEFAULT_REASON_SEPARATOR = "; "


@dataclass(frozen=True, slots=True)
class CellApproval:
    task_id: int
    role: RaciRole
    employee_id: int
    status: ApprovalStatus
    records: tuple[ApprovalRecordData, ...]


@dataclass(frozen=True, slots=True)
class MatrixView:
    matrix: Matrix
    event_status: EventStatus
    rejection_reason: str | None = None
    cells: Mapping[tuple[int, RaciRole], CellApproval] = field(default_factory=dict)


def record_sort_key(record: ApprovalRecordData) -> tuple[int, int, int, int]:
    return (
        record.task_id,
        ROLE_ORDER.index(record.role),
        record.employee_id,
        record.approval_level,
    )


def _fold(statuses: Iterable[ApprovalStatus]) -> ApprovalStatus | None:
    seen = set(statuses)
    if not seen:
        return None
    if ApprovalStatus.REJECTED in seen:
        return ApprovalStatus.REJECTED
    if seen == {ApprovalStatus.APPROVED}:
        return ApprovalStatus.APPROVED
    return ApprovalStatus.PENDING


def aggregate_event_status(records: Iterable[ApprovalRecordData]) -> EventStatus:
    """Any rejection rejects the event; approval needs every record approved.

    Independent of record order. An event without records is still a draft.
    """

    folded = _fold(record.status for record in records)
    if folded is None:
        return EventStatus.DRAFT
    return {
        ApprovalStatus.REJECTED: EventStatus.REJECTED,
        ApprovalStatus.APPROVED: EventStatus.APPROVED,
        ApprovalStatus.PENDING: EventStatus.PENDING,
    }[folded]


def rejection_reason(
    records: Iterable[ApprovalRecordData],
    *,
    separator: str = DEFAULT_REASON_SEPARATOR,
) -> str | None:
    """Reasons of all rejecting records, in matrix order."""

    reasons = [
        record.reason
        for record in sorted(records, key=record_sort_key)
        if record.status is ApprovalStatus.REJECTED and record.reason
    ]
    if not reasons:
        return None
    return separator.join(reasons)


def group_by_event(records: Iterable[ApprovalRecordData]) -> dict[int, list[ApprovalRecordData]]:
    grouped: dict[int, list[ApprovalRecordData]] = {}
    for record in records:
        grouped.setdefault(record.event_id, []).append(record)
    for items in grouped.values():
        items.sort(key=record_sort_key)
    return grouped


def group_by_task(records: Iterable[ApprovalRecordData]) -> dict[int, list[ApprovalRecordData]]:
    grouped: dict[int, list[ApprovalRecordData]] = {}
    for record in sorted(records, key=record_sort_key):
        grouped.setdefault(record.task_id, []).append(record)
    return grouped


def matrix_from_records(
    records: Iterable[ApprovalRecordData],
    *,
    event_id: int,
    tasks: Sequence[TaskRow],
    employees: Sequence[EmployeeRef],
) -> Matrix:
    """Rebuild the submitted matrix from its approval records."""

    slots: dict[tuple[int, RaciRole], int] = {}
    limits: dict[LimitKey, FinancialLimit] = {}
    for task_id, task_records in group_by_task(
        record for record in records if record.event_id == event_id
    ).items():
        for record in task_records:
            slots.setdefault((task_id, record.role), record.employee_id)
            if record.limit is not None:
                limits.setdefault(LimitKey(task_id, record.role, record.employee_id), record.limit)

    return Matrix(
        event_id=event_id,
        tasks=tuple(tasks),
        slots=slots,
        limits=limits,
        employees=tuple(employees),
    )


def build_matrix_view(
    records: Sequence[ApprovalRecordData],
    *,
    event_id: int,
    tasks: Sequence[TaskRow],
    employees: Sequence[EmployeeRef],
    separator: str = DEFAULT_REASON_SEPARATOR,
) -> MatrixView:
    event_records = [record for record in records if record.event_id == event_id]
    matrix = matrix_from_records(event_records, event_id=event_id, tasks=tasks, employees=employees)

    by_cell: dict[tuple[int, RaciRole], list[ApprovalRecordData]] = {}
    for record in sorted(event_records, key=record_sort_key):
        by_cell.setdefault((record.task_id, record.role), []).append(record)

    cells = {
        slot: CellApproval(
            task_id=slot[0],
            role=slot[1],
            employee_id=cell_records[0].employee_id,
            status=_fold(record.status for record in cell_records) or ApprovalStatus.PENDING,
            records=tuple(cell_records),
        )
        for slot, cell_records in by_cell.items()
    }

    return MatrixView(
        matrix=matrix,
        event_status=aggregate_event_status(event_records),
        rejection_reason=rejection_reason(event_records, separator=separator),
        cells=cells,
    )
