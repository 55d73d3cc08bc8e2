"""ORM entities for the RACI matrix and approval schema."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from raciflow.db.base import Base
from raciflow.engine.types import ApprovalStatus, EventStatus, RaciRole

JSONPayload = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Plain id rather than a foreign key: employees reference departments too.
    hod_employee_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = (Index("ix_employees_department_id", "department_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    department_id: Mapped[int] = mapped_column(Integer, ForeignKey("departments.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    designation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_department_id", "department_id"),
        Index("ix_events_department_status", "department_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    department_id: Mapped[int] = mapped_column(Integer, ForeignKey("departments.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    status: Mapped[EventStatus] = mapped_column(
        SQLEnum(EventStatus, name="event_status", values_callable=_enum_values),
        nullable=False,
        default=EventStatus.DRAFT,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class EventEmployee(Base):
    __tablename__ = "event_employees"
    __table_args__ = (
        UniqueConstraint("event_id", "employee_id", name="uq_event_employees_event_employee"),
        Index("ix_event_employees_event_id", "event_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(Integer, ForeignKey("events.id"), nullable=False)
    employee_id: Mapped[int] = mapped_column(Integer, ForeignKey("employees.id"), nullable=False)


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_event_id", "event_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(Integer, ForeignKey("events.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class RaciAssignment(Base):
    __tablename__ = "raci_assignments"
    __table_args__ = (
        CheckConstraint(
            "financial_limit_min IS NULL OR financial_limit_min >= 0",
            name="ck_raci_assignments_limit_min_non_negative",
        ),
        CheckConstraint(
            "financial_limit_max IS NULL OR financial_limit_max >= 0",
            name="ck_raci_assignments_limit_max_non_negative",
        ),
        CheckConstraint(
            "financial_limit_min IS NULL OR financial_limit_max IS NULL "
            "OR financial_limit_min <= financial_limit_max",
            name="ck_raci_assignments_limit_range",
        ),
        CheckConstraint(
            "role IN ('responsible', 'accountable') "
            "OR (financial_limit_min IS NULL AND financial_limit_max IS NULL)",
            name="ck_raci_assignments_limit_owner_roles",
        ),
        # One employee per role slot and one role per employee on a task.
        UniqueConstraint("task_id", "role", name="uq_raci_assignments_task_role"),
        UniqueConstraint("task_id", "employee_id", name="uq_raci_assignments_task_employee"),
        Index("ix_raci_assignments_event_id", "event_id"),
        Index("ix_raci_assignments_employee_id", "employee_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(Integer, ForeignKey("events.id"), nullable=False)
    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=False)
    role: Mapped[RaciRole] = mapped_column(
        SQLEnum(RaciRole, name="raci_role", values_callable=_enum_values),
        nullable=False,
    )
    employee_id: Mapped[int] = mapped_column(Integer, ForeignKey("employees.id"), nullable=False)
    financial_limit_min: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    financial_limit_max: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ApprovalRecord(Base):
    __tablename__ = "approval_records"
    __table_args__ = (
        UniqueConstraint(
            "event_id",
            "approval_level",
            "task_id",
            "role",
            "employee_id",
            name="uq_approval_records_event_level_assignment",
        ),
        CheckConstraint("approval_level >= 1", name="ck_approval_records_level_positive"),
        CheckConstraint(
            "status <> 'REJECTED' OR reason IS NOT NULL",
            name="ck_approval_records_rejection_reason",
        ),
        Index("ix_approval_records_event_id", "event_id"),
        Index("ix_approval_records_approver_status", "approver_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(Integer, ForeignKey("events.id"), nullable=False)
    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=False)
    role: Mapped[RaciRole] = mapped_column(
        SQLEnum(RaciRole, name="raci_role", values_callable=_enum_values),
        nullable=False,
    )
    employee_id: Mapped[int] = mapped_column(Integer, ForeignKey("employees.id"), nullable=False)
    approver_id: Mapped[int] = mapped_column(Integer, ForeignKey("employees.id"), nullable=False)
    approval_level: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ApprovalStatus] = mapped_column(
        SQLEnum(ApprovalStatus, name="approval_status", values_callable=_enum_values),
        nullable=False,
        default=ApprovalStatus.PENDING,
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Snapshot of the assignment's limit at submission time.
    financial_limit_min: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    financial_limit_max: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_event_id", "event_id"),
        Index("ix_audit_events_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(Integer, ForeignKey("events.id"), nullable=False)
    entity_name: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(128), nullable=False)
    action_type: Mapped[str] = mapped_column(String(64), nullable=False)
    before_payload: Mapped[dict | None] = mapped_column(JSONPayload, nullable=True)
    after_payload: Mapped[dict | None] = mapped_column(JSONPayload, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
