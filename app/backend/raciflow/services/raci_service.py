"""Application service for RACI matrices, submission and approval decisions."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from raciflow.core.config import get_settings
from raciflow.engine import aggregator
from raciflow.engine.approvals import apply_decision
from raciflow.engine.builder import (
    build_matrix,
    candidate_from_payload,
    candidate_from_rows,
    matrix_to_payload,
    resolve_employee_pool,
)
from raciflow.engine.errors import (
    AlreadyDecided,
    ApprovalRecordNotFound,
    ConflictError,
    MatrixLocked,
    MatrixValidationFailed,
    NotFoundError,
    SubmissionReason,
    SubmissionRejected,
)
from raciflow.engine.limits import encode_limits
from raciflow.engine.submission import (
    SUBMITTABLE_STATUSES,
    ensure_submittable_status,
    resolve_approvers,
    submit_matrix,
)
from raciflow.engine.types import (
    ApprovalRecordData,
    EmployeeRef,
    EventStatus,
    FinancialLimit,
    Matrix,
    MatrixCandidate,
    RaciRole,
    RoleAssignment,
    TaskRow,
)
from raciflow.engine.validator import ValidationResult, validate_matrix
from raciflow.models.entities import (
    ApprovalRecord,
    AuditEvent,
    Event,
    EventEmployee,
    RaciAssignment,
    Task,
    utcnow,
)
from raciflow.repositories.raci_repository import RaciRepository
from raciflow.services.directory_service import EmployeeDirectory

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = frozenset({EventStatus.DRAFT, EventStatus.REJECTED})


@dataclass(slots=True)
class EventCreateData:
    name: str
    description: str | None = None


@dataclass(slots=True)
class TaskCreateData:
    name: str
    description: str | None = None


def _limit_of(row: RaciAssignment | ApprovalRecord) -> FinancialLimit | None:
    if row.financial_limit_min is None and row.financial_limit_max is None:
        return None
    return FinancialLimit(min_amount=row.financial_limit_min, max_amount=row.financial_limit_max)


def to_record_data(record: ApprovalRecord) -> ApprovalRecordData:
    return ApprovalRecordData(
        id=record.id,
        event_id=record.event_id,
        task_id=record.task_id,
        role=record.role,
        employee_id=record.employee_id,
        approver_id=record.approver_id,
        approval_level=record.approval_level,
        status=record.status,
        reason=record.reason,
        decided_at=record.decided_at,
        limit=_limit_of(record),
    )


def _matrix_snapshot(matrix: Matrix) -> dict[str, object]:
    return {
        "assignments": [
            {"task_id": item.task_id, "role": item.role.value, "employee_id": item.employee_id}
            for item in matrix.assignments()
        ],
        "financial_limits": encode_limits(matrix.limits),
    }


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class RaciService:
    """Event lifecycle, matrix persistence and the approval workflow."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = RaciRepository(db)
        self.directory = EmployeeDirectory(db)
        self.settings = get_settings()

    # ---------- Serialization ----------
    @staticmethod
    def serialize_event(event: Event) -> dict[str, object]:
        return {
            "id": event.id,
            "department_id": event.department_id,
            "name": event.name,
            "description": event.description,
            "status": event.status.value,
            "rejection_reason": event.rejection_reason,
            "submitted_at": _isoformat(event.submitted_at),
            "created_at": event.created_at.isoformat(),
            "updated_at": event.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_task(task: Task) -> dict[str, object]:
        return {
            "id": task.id,
            "event_id": task.event_id,
            "name": task.name,
            "description": task.description,
        }

    @staticmethod
    def serialize_approval_record(record: ApprovalRecord) -> dict[str, object]:
        limit = _limit_of(record)
        return {
            "id": record.id,
            "event_id": record.event_id,
            "task_id": record.task_id,
            "role": record.role.value,
            "employee_id": record.employee_id,
            "approver_id": record.approver_id,
            "approval_level": record.approval_level,
            "status": record.status.value,
            "reason": record.reason,
            "decided_at": _isoformat(record.decided_at),
            "financial_limits": limit.to_wire() if limit is not None else None,
        }

    @staticmethod
    def serialize_matrix_view(view: aggregator.MatrixView) -> dict[str, object]:
        payload = matrix_to_payload(view.matrix)
        for task_row in payload["tasks"]:
            for role_value, entries in task_row["raci"].items():
                cell = view.cells.get((task_row["id"], RaciRole(role_value)))
                for entry in entries:
                    matches = cell is not None and cell.employee_id == entry["id"]
                    entry["approval_status"] = cell.status.value if matches else None
        payload["status"] = view.event_status.value
        payload["rejection_reason"] = view.rejection_reason
        return payload

    # ---------- Helpers ----------
    def get_event(self, event_id: int) -> Event:
        event = self.repo.get_event(event_id)
        if event is None:
            raise NotFoundError(
                "Event not found.",
                details={"event_id": event_id},
                error_code="EventNotFound",
            )
        return event

    @staticmethod
    def _ensure_editable(event: Event) -> None:
        if event.status not in EDITABLE_STATUSES:
            raise MatrixLocked(
                f"Matrix of event in status '{event.status.value}' cannot be changed.",
                details={"event_id": event.id, "status": event.status.value},
            )

    def _task_rows(self, event_id: int) -> list[TaskRow]:
        return [
            TaskRow(id=task.id, name=task.name, description=task.description)
            for task in self.repo.list_tasks(event_id)
        ]

    def _audit(
        self,
        *,
        event_id: int,
        entity_name: str,
        entity_id: object,
        action_type: str,
        before: dict | None = None,
        after: dict | None = None,
    ) -> None:
        self.repo.add_audit_event(
            AuditEvent(
                event_id=event_id,
                entity_name=entity_name,
                entity_id=str(entity_id),
                action_type=action_type,
                before_payload=before,
                after_payload=after,
                created_at=utcnow(),
            )
        )

    def employee_pool(self, event: Event) -> tuple[EmployeeRef, ...]:
        return resolve_employee_pool(
            self.directory.list_event_employees(event.id),
            self.directory.list_department_employees(event.department_id),
        )

    # ---------- Events ----------
    def create_event(self, department_id: int, data: EventCreateData) -> Event:
        department = self.directory.get_department(department_id)
        now = utcnow()
        event = Event(
            department_id=department.id,
            name=data.name.strip(),
            description=data.description.strip() if data.description else None,
            status=EventStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_event(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def list_events(self, department_id: int) -> list[Event]:
        self.directory.get_department(department_id)
        return self.repo.list_events_for_department(department_id)

    def attach_event_employees(self, event_id: int, employee_ids: Sequence[int]) -> list[EmployeeRef]:
        event = self.get_event(event_id)
        requested = list(dict.fromkeys(employee_ids))
        known = self.directory.get_employees(requested)
        missing = [employee_id for employee_id in requested if employee_id not in known]
        if missing:
            raise NotFoundError(
                "Employees not found.",
                details={"employee_ids": missing},
                error_code="EmployeeNotFound",
            )

        attached = set(self.repo.list_event_employee_ids(event.id))
        for employee_id in requested:
            if employee_id not in attached:
                self.repo.add_event_employee(EventEmployee(event_id=event.id, employee_id=employee_id))
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Employee is already attached to this event.") from exc

        return self.directory.list_event_employees(event.id)

    # ---------- Tasks ----------
    def create_task(self, event_id: int, data: TaskCreateData) -> Task:
        event = self.get_event(event_id)
        self._ensure_editable(event)
        task = Task(
            event_id=event.id,
            name=data.name.strip(),
            description=data.description.strip() if data.description else None,
            created_at=utcnow(),
        )
        self.repo.add_task(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def list_tasks(self, event_id: int) -> list[Task]:
        event = self.get_event(event_id)
        return self.repo.list_tasks(event.id)

    # ---------- Matrix ----------
    def _validate(self, event: Event, payload: Mapping[str, object]) -> ValidationResult:
        candidate = candidate_from_payload(
            event_id=event.id,
            tasks=self._task_rows(event.id),
            payload=payload,
            employees=self.employee_pool(event),
        )
        return validate_matrix(candidate)

    def validate_matrix(self, event_id: int, payload: Mapping[str, object]) -> ValidationResult:
        event = self.get_event(event_id)
        return self._validate(event, payload)

    def _stored_candidate(self, event: Event) -> MatrixCandidate:
        return candidate_from_rows(
            event_id=event.id,
            tasks=self._task_rows(event.id),
            assignments=[
                (RoleAssignment(task_id=row.task_id, role=row.role, employee_id=row.employee_id), _limit_of(row))
                for row in self.repo.list_assignments(event.id)
            ],
            employees=self.employee_pool(event),
        )

    def read_matrix(self, event_id: int) -> Matrix:
        return build_matrix(self._stored_candidate(self.get_event(event_id)))

    def _replace_assignments(self, event: Event, matrix: Matrix) -> None:
        self.repo.delete_assignments(event.id)
        rows = []
        for assignment in matrix.assignments():
            limit = matrix.limit_for(assignment)
            rows.append(
                RaciAssignment(
                    event_id=event.id,
                    task_id=assignment.task_id,
                    role=assignment.role,
                    employee_id=assignment.employee_id,
                    financial_limit_min=limit.min_amount if limit is not None else None,
                    financial_limit_max=limit.max_amount if limit is not None else None,
                    created_at=utcnow(),
                )
            )
        self.repo.add_assignments(rows)

    def _accept_payload(self, event: Event, payload: Mapping[str, object]) -> Matrix:
        result = self._validate(event, payload)
        if not result.ok:
            raise MatrixValidationFailed(result.violations)
        return result.matrix

    def save_matrix(self, event_id: int, payload: Mapping[str, object]) -> Matrix:
        """Validate and store the whole matrix, replacing earlier assignments."""

        event = self.get_event(event_id)
        self._ensure_editable(event)
        matrix = self._accept_payload(event, payload)
        before = _matrix_snapshot(self.read_matrix(event.id))

        try:
            self._replace_assignments(event, matrix)
            event.updated_at = utcnow()
            self._audit(
                event_id=event.id,
                entity_name="raci_matrix",
                entity_id=event.id,
                action_type="save",
                before=before,
                after=_matrix_snapshot(matrix),
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "Matrix save violated assignment uniqueness constraints.",
                details={"event_id": event_id},
            ) from exc

        logger.info("Saved matrix for event %s with %d assignments", event.id, len(matrix.slots))
        return self.read_matrix(event.id)

    def delete_matrix(self, event_id: int) -> None:
        event = self.get_event(event_id)
        self._ensure_editable(event)
        before = _matrix_snapshot(self.read_matrix(event.id))
        removed = self.repo.delete_assignments(event.id)
        event.updated_at = utcnow()
        self._audit(
            event_id=event.id,
            entity_name="raci_matrix",
            entity_id=event.id,
            action_type="delete",
            before=before,
        )
        self.db.commit()
        logger.info("Deleted %d assignments of event %s", removed, event.id)

    # ---------- Submission ----------
    def submit_matrix(
        self,
        event_id: int,
        approver_ids: Sequence[int] | None = None,
        payload: Mapping[str, object] | None = None,
    ) -> list[ApprovalRecord]:
        """Submit the event's matrix for approval.

        When ``payload`` is given it is validated and stored as the matrix in
        the same transaction. Previous approval records of a rejected event
        are replaced.
        """

        event = self.get_event(event_id)
        ensure_submittable_status(event.status)

        if payload is not None:
            matrix = self._accept_payload(event, payload)
        else:
            # Stored rows may have gone stale since they were saved.
            result = validate_matrix(self._stored_candidate(event))
            if not result.ok:
                raise MatrixValidationFailed(result.violations)
            matrix = result.matrix

        approvers = resolve_approvers(
            approver_ids,
            known=self.directory.get_employees(approver_ids or []),
            defaults=self.directory.resolve_approvers(event.department_id),
        )
        submitted_at = utcnow()
        prepared = submit_matrix(
            matrix,
            event_status=event.status,
            approvers=approvers,
            submitted_at=submitted_at,
        )

        try:
            claimed = self.repo.claim_for_submission(
                event.id,
                allowed=SUBMITTABLE_STATUSES,
                submitted_at=submitted_at,
            )
            if claimed == 0:
                raise SubmissionRejected(
                    SubmissionReason.CONCURRENT_SUBMISSION,
                    "Event was submitted or changed by another request.",
                    details={"event_id": event.id},
                )

            if payload is not None:
                self._replace_assignments(event, matrix)
            self.repo.delete_approval_records(event.id)
            rows = [
                ApprovalRecord(
                    event_id=item.event_id,
                    task_id=item.task_id,
                    role=item.role,
                    employee_id=item.employee_id,
                    approver_id=item.approver_id,
                    approval_level=item.approval_level,
                    status=item.status,
                    reason=item.reason,
                    decided_at=item.decided_at,
                    financial_limit_min=item.limit.min_amount if item.limit is not None else None,
                    financial_limit_max=item.limit.max_amount if item.limit is not None else None,
                    created_at=submitted_at,
                )
                for item in prepared
            ]
            self.repo.add_approval_records(rows)
            self._audit(
                event_id=event.id,
                entity_name="event",
                entity_id=event.id,
                action_type="submit",
                before={"status": event.status.value},
                after={
                    "status": EventStatus.PENDING.value,
                    "approver_ids": [approver.id for approver in approvers],
                    **_matrix_snapshot(matrix),
                },
            )
            self.db.commit()
        except SubmissionRejected:
            self.db.rollback()
            raise
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "Submission violated approval record constraints.",
                details={"event_id": event_id},
            ) from exc

        self.db.refresh(event)
        logger.info(
            "Submitted event %s for approval by %s",
            event.id,
            ", ".join(str(approver.id) for approver in approvers),
        )
        return self.repo.list_approval_records(event.id)

    # ---------- Decisions ----------
    def decide(self, record_id: int, decision: str, reason: str | None = None) -> Event:
        """Apply an approver's decision and recompute the event status."""

        record = self.repo.get_approval_record(record_id)
        if record is None:
            raise ApprovalRecordNotFound(
                "Approval record not found.",
                details={"approval_record_id": record_id},
            )

        decided = apply_decision(to_record_data(record), decision, reason=reason, decided_at=utcnow())
        event = self.repo.lock_event(record.event_id)
        if event is None:
            raise NotFoundError(
                "Event not found.",
                details={"event_id": record.event_id},
                error_code="EventNotFound",
            )
        before = {"status": event.status.value, "rejection_reason": event.rejection_reason}

        updated = self.repo.mark_decided(
            record.id,
            status=decided.status,
            reason=decided.reason,
            decided_at=decided.decided_at,
        )
        if updated == 0:
            self.db.rollback()
            raise AlreadyDecided(
                f"Approval record {record_id} was already decided.",
                details={"approval_record_id": record_id},
            )

        self.db.expire_all()
        records = [to_record_data(row) for row in self.repo.list_approval_records(event.id)]
        event.status = aggregator.aggregate_event_status(records)
        event.rejection_reason = aggregator.rejection_reason(
            records,
            separator=self.settings.rejection_reason_separator,
        )
        event.updated_at = utcnow()
        self._audit(
            event_id=event.id,
            entity_name="approval_record",
            entity_id=record_id,
            action_type=decided.status.value.lower(),
            before=before,
            after={
                "status": event.status.value,
                "rejection_reason": event.rejection_reason,
                "decision_reason": decided.reason,
            },
        )
        self.db.commit()
        self.db.refresh(event)
        logger.info(
            "Approval record %s %s; event %s is now %s",
            record_id,
            decided.status.value,
            event.id,
            event.status.value,
        )
        return event

    # ---------- Views ----------
    def build_matrix_view(self, event_id: int) -> aggregator.MatrixView:
        """Matrix of the event with per-cell approval state.

        Pending and approved events are rebuilt from their approval records.
        A rejected event shows its stored (editable) matrix alongside the
        decisions of its last submission; a never-submitted event shows the
        draft matrix only.
        """

        event = self.get_event(event_id)
        records = [to_record_data(row) for row in self.repo.list_approval_records(event.id)]
        if not records:
            return aggregator.MatrixView(
                matrix=self.read_matrix(event.id),
                event_status=event.status,
                rejection_reason=event.rejection_reason,
            )

        pool = {employee.id: employee for employee in self.employee_pool(event)}
        referenced = {record.employee_id for record in records} - set(pool)
        pool.update(self.directory.get_employees(referenced))
        view = aggregator.build_matrix_view(
            records,
            event_id=event.id,
            tasks=self._task_rows(event.id),
            employees=list(pool.values()),
            separator=self.settings.rejection_reason_separator,
        )
        if event.status in EDITABLE_STATUSES:
            view = replace(view, matrix=self.read_matrix(event.id))
        return view

    def list_event_approvals(self, event_id: int) -> list[ApprovalRecord]:
        event = self.get_event(event_id)
        return self.repo.list_approval_records(event.id)

    def list_pending_approvals(self, approver_id: int) -> list[dict[str, object]]:
        self.directory.get_employee(approver_id)
        return [
            {
                **self.serialize_approval_record(record),
                "event_name": event.name,
                "task_name": task.name,
                "employee_name": employee.name,
            }
            for record, event, task, employee in self.repo.list_pending_records_for_approver(approver_id)
        ]

    def list_employee_assignments(self, employee_id: int) -> list[dict[str, object]]:
        self.directory.get_employee(employee_id)
        rows = []
        for assignment, task, event in self.repo.list_assignments_for_employee(employee_id):
            limit = _limit_of(assignment)
            rows.append(
                {
                    "event_id": event.id,
                    "event_name": event.name,
                    "event_status": event.status.value,
                    "task_id": task.id,
                    "task_name": task.name,
                    "role": assignment.role.value,
                    "financial_limits": limit.to_wire() if limit is not None else None,
                }
            )
        return rows

    def list_audit_events(self, event_id: int) -> list[AuditEvent]:
        event = self.get_event(event_id)
        return self.repo.list_audit_events(event.id)
