"""Approval record state machine: PENDING -> APPROVED | REJECTED, both terminal."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from raciflow.engine.errors import AlreadyDecided, InvalidDecision, ReasonRequired
from raciflow.engine.types import ApprovalRecordData, ApprovalStatus

DECISIONS = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED})


def parse_decision(value: str | ApprovalStatus) -> ApprovalStatus:
    try:
        decision = value if isinstance(value, ApprovalStatus) else ApprovalStatus(str(value).strip().upper())
    except ValueError as exc:
        raise InvalidDecision(
            f"Unknown decision {value!r}.",
            details={"allowed": sorted(item.value for item in DECISIONS)},
        ) from exc
    if decision not in DECISIONS:
        raise InvalidDecision(
            f"Decision must be one of {', '.join(sorted(item.value for item in DECISIONS))}.",
            details={"allowed": sorted(item.value for item in DECISIONS)},
        )
    return decision


def apply_decision(
    record: ApprovalRecordData,
    decision: str | ApprovalStatus,
    *,
    reason: str | None = None,
    decided_at: datetime,
) -> ApprovalRecordData:
    """Return the record with the decision applied.

    A decided record never changes again; a rejection needs a reason.
    """

    status = parse_decision(decision)
    if record.status.is_terminal:
        raise AlreadyDecided(
            f"Approval record {record.id} was already {record.status.value}.",
            details={"approval_record_id": record.id, "status": record.status.value},
        )

    cleaned_reason = (reason or "").strip() or None
    if status is ApprovalStatus.REJECTED and cleaned_reason is None:
        raise ReasonRequired(
            "A reason is required when rejecting.",
            details={"approval_record_id": record.id},
        )

    return replace(record, status=status, reason=cleaned_reason, decided_at=decided_at)
