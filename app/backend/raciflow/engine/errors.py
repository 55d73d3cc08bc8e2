"""Error taxonomy for matrix validation, submission and approval decisions."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from raciflow.engine.types import RaciRole


class ViolationCode(str, enum.Enum):
    UNKNOWN_EMPLOYEE = "UnknownEmployee"
    UNKNOWN_TASK = "UnknownTask"
    LIMIT_NOT_APPLICABLE_FOR_ROLE = "LimitNotApplicableForRole"
    INVALID_LIMIT_RANGE = "InvalidLimitRange"
    INVALID_LIMIT_VALUE = "InvalidLimitValue"


class SubmissionReason(str, enum.Enum):
    EMPTY_MATRIX = "EmptyMatrix"
    NO_OWNER_ASSIGNED = "NoOwnerAssigned"
    NO_APPROVER_RESOLVABLE = "NoApproverResolvable"
    EVENT_NOT_SUBMITTABLE = "EventNotSubmittable"
    CONCURRENT_SUBMISSION = "ConcurrentSubmission"


@dataclass(frozen=True, slots=True)
class Violation:
    """A single rule violation found while validating a candidate matrix."""

    code: ViolationCode
    message: str
    task_id: int | None = None
    role: RaciRole | None = None
    employee_id: int | None = None
    field: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code.value,
            "message": self.message,
            "task_id": self.task_id,
            "role": self.role.value if self.role is not None else None,
            "employee_id": self.employee_id,
            "field": self.field,
        }


class DomainError(Exception):
    """Base class for errors surfaced to API callers."""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


class NotFoundError(DomainError):
    error_code = "NotFound"
    http_status = 404


class ConflictError(DomainError):
    error_code = "Conflict"
    http_status = 409


class MatrixLocked(ConflictError):
    """Matrix edits are only allowed while the event is draft or rejected."""

    error_code = "MatrixLocked"


class MatrixValidationFailed(DomainError):
    error_code = "MatrixValidationFailed"
    http_status = 422

    def __init__(self, violations: tuple[Violation, ...] | list[Violation]) -> None:
        self.violations = tuple(violations)
        super().__init__(
            f"Matrix has {len(self.violations)} violation(s).",
            details={"violations": [violation.to_dict() for violation in self.violations]},
        )


class SubmissionRejected(DomainError):
    error_code = "SubmissionRejected"
    http_status = 422

    def __init__(self, reason: SubmissionReason, message: str, details: dict[str, Any] | None = None) -> None:
        self.reason = reason
        super().__init__(message, details={"reason_code": reason.value, **(details or {})})


class ApproverEmailMissing(DomainError):
    error_code = "ApproverEmailMissing"
    http_status = 422

    def __init__(self, employee_ids: list[int]) -> None:
        self.employee_ids = employee_ids
        super().__init__(
            "Approvers must have an email address.",
            details={"employee_ids": employee_ids},
        )


class DecisionError(DomainError):
    error_code = "DecisionError"
    http_status = 400


class ApprovalRecordNotFound(DecisionError):
    error_code = "ApprovalRecordNotFound"
    http_status = 404


class InvalidDecision(DecisionError):
    error_code = "InvalidDecision"
    http_status = 422


class ReasonRequired(DecisionError):
    error_code = "ReasonRequired"
    http_status = 422


class AlreadyDecided(DecisionError):
    error_code = "AlreadyDecided"
    http_status = 409
