"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


event_status = postgresql.ENUM(
    "draft", "pending", "approved", "rejected", name="event_status", create_type=False
)
raci_role = postgresql.ENUM(
    "responsible", "accountable", "consulted", "informed", name="raci_role", create_type=False
)
approval_status = postgresql.ENUM(
    "PENDING", "APPROVED", "REJECTED", name="approval_status", create_type=False
)


def upgrade() -> None:
    event_status.create(op.get_bind(), checkfirst=True)
    raci_role.create(op.get_bind(), checkfirst=True)
    approval_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("hod_employee_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("designation", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
    )
    op.create_index("ix_employees_department_id", "employees", ["department_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("status", event_status, nullable=False, server_default="draft"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_events_department_id", "events", ["department_id"])
    op.create_index("ix_events_department_status", "events", ["department_id", "status"])

    op.create_table(
        "event_employees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        sa.UniqueConstraint("event_id", "employee_id", name="uq_event_employees_event_employee"),
    )
    op.create_index("ix_event_employees_event_id", "event_employees", ["event_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_tasks_event_id", "tasks", ["event_id"])

    op.create_table(
        "raci_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("role", raci_role, nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("financial_limit_min", sa.Numeric(14, 2), nullable=True),
        sa.Column("financial_limit_max", sa.Numeric(14, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "financial_limit_min IS NULL OR financial_limit_min >= 0",
            name="ck_raci_assignments_limit_min_non_negative",
        ),
        sa.CheckConstraint(
            "financial_limit_max IS NULL OR financial_limit_max >= 0",
            name="ck_raci_assignments_limit_max_non_negative",
        ),
        sa.CheckConstraint(
            "financial_limit_min IS NULL OR financial_limit_max IS NULL "
            "OR financial_limit_min <= financial_limit_max",
            name="ck_raci_assignments_limit_range",
        ),
        sa.CheckConstraint(
            "role IN ('responsible', 'accountable') "
            "OR (financial_limit_min IS NULL AND financial_limit_max IS NULL)",
            name="ck_raci_assignments_limit_owner_roles",
        ),
        sa.UniqueConstraint("task_id", "role", name="uq_raci_assignments_task_role"),
        sa.UniqueConstraint("task_id", "employee_id", name="uq_raci_assignments_task_employee"),
    )
    op.create_index("ix_raci_assignments_event_id", "raci_assignments", ["event_id"])
    op.create_index("ix_raci_assignments_employee_id", "raci_assignments", ["employee_id"])

    op.create_table(
        "approval_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("role", raci_role, nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("approver_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("approval_level", sa.Integer(), nullable=False),
        sa.Column("status", approval_status, nullable=False, server_default="PENDING"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("financial_limit_min", sa.Numeric(14, 2), nullable=True),
        sa.Column("financial_limit_max", sa.Numeric(14, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("approval_level >= 1", name="ck_approval_records_level_positive"),
        sa.CheckConstraint(
            "status <> 'REJECTED' OR reason IS NOT NULL",
            name="ck_approval_records_rejection_reason",
        ),
        sa.UniqueConstraint(
            "event_id",
            "approval_level",
            "task_id",
            "role",
            "employee_id",
            name="uq_approval_records_event_level_assignment",
        ),
    )
    op.create_index("ix_approval_records_event_id", "approval_records", ["event_id"])
    op.create_index("ix_approval_records_approver_status", "approval_records", ["approver_id", "status"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("entity_name", sa.String(length=128), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=False),
        sa.Column("action_type", sa.String(length=64), nullable=False),
        sa.Column("before_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("after_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_events_event_id", "audit_events", ["event_id"])
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_created_at", table_name="audit_events")
    op.drop_index("ix_audit_events_event_id", table_name="audit_events")
    op.drop_table("audit_events")

    op.drop_index("ix_approval_records_approver_status", table_name="approval_records")
    op.drop_index("ix_approval_records_event_id", table_name="approval_records")
    op.drop_table("approval_records")

    op.drop_index("ix_raci_assignments_employee_id", table_name="raci_assignments")
    op.drop_index("ix_raci_assignments_event_id", table_name="raci_assignments")
    op.drop_table("raci_assignments")

    op.drop_index("ix_tasks_event_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_event_employees_event_id", table_name="event_employees")
    op.drop_table("event_employees")

    op.drop_index("ix_events_department_status", table_name="events")
    op.drop_index("ix_events_department_id", table_name="events")
    op.drop_table("events")

    op.drop_index("ix_employees_department_id", table_name="employees")
    op.drop_table("employees")

    op.drop_table("departments")

    approval_status.drop(op.get_bind(), checkfirst=True)
    raci_role.drop(op.get_bind(), checkfirst=True)
    event_status.drop(op.get_bind(), checkfirst=True)
