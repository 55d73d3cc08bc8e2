"""Repository helpers for events, tasks, RACI assignments and approvals."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from raciflow.engine.types import ApprovalStatus, EventStatus
from raciflow.models.entities import (
    ApprovalRecord,
    AuditEvent,
    Employee,
    Event,
    EventEmployee,
    RaciAssignment,
    Task,
)


class RaciRepository:
    """Persistence operations used by the matrix and approval services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Events ----------
    def get_event(self, event_id: int) -> Event | None:
        return self.db.scalar(select(Event).where(Event.id == event_id))

    def list_events_for_department(self, department_id: int) -> list[Event]:
        return self.db.scalars(
            select(Event)
            .where(Event.department_id == department_id)
            .order_by(Event.created_at.desc(), Event.id.desc())
        ).all()

    def add_event(self, event: Event) -> Event:
        self.db.add(event)
        self.db.flush()
        return event

    def lock_event(self, event_id: int) -> Event | None:
        return self.db.scalar(select(Event).where(Event.id == event_id).with_for_update())

    def claim_for_submission(
        self,
        event_id: int,
        *,
        allowed: Iterable[EventStatus],
        submitted_at: datetime,
    ) -> int:
        """Move the event to pending only if it is still in an allowed status.

        Returns the number of rows changed; zero means another writer won.
        """

        result = self.db.execute(
            update(Event)
            .where(Event.id == event_id, Event.status.in_(list(allowed)))
            .values(
                status=EventStatus.PENDING,
                rejection_reason=None,
                submitted_at=submitted_at,
                updated_at=submitted_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ---------- Event employees ----------
    def list_event_employee_ids(self, event_id: int) -> list[int]:
        return self.db.scalars(
            select(EventEmployee.employee_id)
            .where(EventEmployee.event_id == event_id)
            .order_by(EventEmployee.id.asc())
        ).all()

    def add_event_employee(self, link: EventEmployee) -> EventEmployee:
        self.db.add(link)
        self.db.flush()
        return link

    # ---------- Tasks ----------
    def list_tasks(self, event_id: int) -> list[Task]:
        return self.db.scalars(
            select(Task).where(Task.event_id == event_id).order_by(Task.id.asc())
        ).all()

    def get_task(self, task_id: int) -> Task | None:
        return self.db.scalar(select(Task).where(Task.id == task_id))

    def add_task(self, task: Task) -> Task:
        self.db.add(task)
        self.db.flush()
        return task

    # ---------- RACI assignments ----------
    def list_assignments(self, event_id: int) -> list[RaciAssignment]:
        return self.db.scalars(
            select(RaciAssignment)
            .where(RaciAssignment.event_id == event_id)
            .order_by(RaciAssignment.task_id.asc(), RaciAssignment.id.asc())
        ).all()

    def delete_assignments(self, event_id: int) -> int:
        result = self.db.execute(
            delete(RaciAssignment)
            .where(RaciAssignment.event_id == event_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_assignments(self, rows: Iterable[RaciAssignment]) -> None:
        self.db.add_all(list(rows))
        self.db.flush()

    def list_assignments_for_employee(self, employee_id: int) -> list[tuple[RaciAssignment, Task, Event]]:
        rows = self.db.execute(
            select(RaciAssignment, Task, Event)
            .join(Task, Task.id == RaciAssignment.task_id)
            .join(Event, Event.id == RaciAssignment.event_id)
            .where(RaciAssignment.employee_id == employee_id)
            .order_by(Event.id.asc(), Task.id.asc())
        ).all()
        return [(assignment, task, event) for assignment, task, event in rows]

    # ---------- Approval records ----------
    def get_approval_record(self, record_id: int) -> ApprovalRecord | None:
        return self.db.scalar(select(ApprovalRecord).where(ApprovalRecord.id == record_id))

    def list_approval_records(self, event_id: int) -> list[ApprovalRecord]:
        return self.db.scalars(
            select(ApprovalRecord)
            .where(ApprovalRecord.event_id == event_id)
            .order_by(
                ApprovalRecord.task_id.asc(),
                ApprovalRecord.approval_level.asc(),
                ApprovalRecord.id.asc(),
            )
        ).all()

    def list_pending_records_for_approver(self, approver_id: int) -> list[tuple[ApprovalRecord, Event, Task, Employee]]:
        rows = self.db.execute(
            select(ApprovalRecord, Event, Task, Employee)
            .join(Event, Event.id == ApprovalRecord.event_id)
            .join(Task, Task.id == ApprovalRecord.task_id)
            .join(Employee, Employee.id == ApprovalRecord.employee_id)
            .where(
                ApprovalRecord.approver_id == approver_id,
                ApprovalRecord.status == ApprovalStatus.PENDING,
            )
            .order_by(Event.id.asc(), Task.id.asc(), ApprovalRecord.approval_level.asc())
        ).all()
        return [(record, event, task, employee) for record, event, task, employee in rows]

    def delete_approval_records(self, event_id: int) -> int:
        result = self.db.execute(
            delete(ApprovalRecord)
            .where(ApprovalRecord.event_id == event_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_approval_records(self, rows: Iterable[ApprovalRecord]) -> None:
        self.db.add_all(list(rows))
        self.db.flush()

    def mark_decided(
        self,
        record_id: int,
        *,
        status: ApprovalStatus,
        reason: str | None,
        decided_at: datetime,
    ) -> int:
        """Record a decision only if the record is still pending."""

        result = self.db.execute(
            update(ApprovalRecord)
            .where(
                ApprovalRecord.id == record_id,
                ApprovalRecord.status == ApprovalStatus.PENDING,
            )
            .values(status=status, reason=reason, decided_at=decided_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ---------- Audit ----------
    def add_audit_event(self, audit: AuditEvent) -> AuditEvent:
        self.db.add(audit)
        self.db.flush()
        return audit

    def list_audit_events(self, event_id: int) -> list[AuditEvent]:
        return self.db.scalars(
            select(AuditEvent)
            .where(AuditEvent.event_id == event_id)
            .order_by(AuditEvent.created_at.asc(), AuditEvent.id.asc())
        ).all()
