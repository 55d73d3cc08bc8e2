"""Submission of a matrix for approval (event draft/rejected -> pending)."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime

from raciflow.engine.errors import ApproverEmailMissing, SubmissionReason, SubmissionRejected
from raciflow.engine.types import (
    ApprovalRecordData,
    ApprovalStatus,
    EmployeeRef,
    EventStatus,
    Matrix,
    RaciRole,
)

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = frozenset({EventStatus.DRAFT, EventStatus.REJECTED})


def ensure_submittable_status(status: EventStatus) -> None:
    if status not in SUBMITTABLE_STATUSES:
        raise SubmissionRejected(
            SubmissionReason.EVENT_NOT_SUBMITTABLE,
            f"Event in status '{status.value}' cannot be submitted for approval.",
            details={"status": status.value},
        )


def ensure_matrix_submittable(matrix: Matrix) -> None:
    """Every filled task needs an owner (Responsible or Accountable)."""

    filled = matrix.filled_task_ids()
    if not filled:
        raise SubmissionRejected(
            SubmissionReason.EMPTY_MATRIX,
            "Matrix has no task with an assigned role.",
        )

    ownerless = [
        task_id
        for task_id in filled
        if matrix.employee_for(task_id, RaciRole.RESPONSIBLE) is None
        and matrix.employee_for(task_id, RaciRole.ACCOUNTABLE) is None
    ]
    if ownerless:
        raise SubmissionRejected(
            SubmissionReason.NO_OWNER_ASSIGNED,
            "Every task with assignments needs a Responsible or Accountable employee.",
            details={"task_ids": ownerless},
        )


def resolve_approvers(
    requested_ids: Sequence[int] | None,
    *,
    known: Mapping[int, EmployeeRef],
    defaults: Sequence[EmployeeRef],
) -> tuple[EmployeeRef, ...]:
    """Pick the approvers for a submission.

    Explicitly requested approvers are used in the order given (duplicates
    removed); without a request the department defaults (its HOD) apply.
    Every approver must have an email address.
    """

    if requested_ids:
        ordered_ids = list(dict.fromkeys(requested_ids))
        missing = [approver_id for approver_id in ordered_ids if approver_id not in known]
        if missing:
            raise SubmissionRejected(
                SubmissionReason.NO_APPROVER_RESOLVABLE,
                "Requested approvers could not be resolved.",
                details={"approver_ids": missing},
            )
        approvers = tuple(known[approver_id] for approver_id in ordered_ids)
    else:
        approvers = tuple(dict((approver.id, approver) for approver in defaults).values())

    if not approvers:
        raise SubmissionRejected(
            SubmissionReason.NO_APPROVER_RESOLVABLE,
            "No approver is resolvable for this event.",
        )

    without_email = [approver.id for approver in approvers if not (approver.email or "").strip()]
    if without_email:
        raise ApproverEmailMissing(without_email)
    return approvers


def flatten_matrix(
    matrix: Matrix,
    approvers: Sequence[EmployeeRef],
    *,
    submitted_at: datetime,
) -> list[ApprovalRecordData]:
    """One record per assignment and approver; level is the approver's position.

    Responsible and Accountable assignments wait for a decision. Consulted
    and Informed assignments are informational and are recorded as approved
    at submission time.
    """

    records: list[ApprovalRecordData] = []
    for assignment in matrix.assignments():
        limit = matrix.limit_for(assignment)
        informational = not assignment.role.requires_sign_off
        for level, approver in enumerate(approvers, start=1):
            records.append(
                ApprovalRecordData(
                    event_id=matrix.event_id,
                    task_id=assignment.task_id,
                    role=assignment.role,
                    employee_id=assignment.employee_id,
                    approver_id=approver.id,
                    approval_level=level,
                    status=ApprovalStatus.APPROVED if informational else ApprovalStatus.PENDING,
                    decided_at=submitted_at if informational else None,
                    limit=limit,
                )
            )
    return records


def submit_matrix(
    matrix: Matrix,
    *,
    event_status: EventStatus,
    approvers: Sequence[EmployeeRef],
    submitted_at: datetime,
) -> list[ApprovalRecordData]:
    """Check submission preconditions and produce the approval records.

    Nothing is produced unless every precondition holds.
    """

    ensure_submittable_status(event_status)
    ensure_matrix_submittable(matrix)
    if not approvers:
        raise SubmissionRejected(
            SubmissionReason.NO_APPROVER_RESOLVABLE,
            "No approver is resolvable for this event.",
        )

    records = flatten_matrix(matrix, approvers, submitted_at=submitted_at)
    logger.info(
        "Prepared %d approval records for event %s across %d approver(s)",
        len(records),
        matrix.event_id,
        len(approvers),
    )
    return records
