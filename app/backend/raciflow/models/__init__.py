"""ORM model package."""

from raciflow.models.entities import (
    ApprovalRecord,
    AuditEvent,
    Department,
    Employee,
    Event,
    EventEmployee,
    RaciAssignment,
    Task,
)

__all__ = [
    "ApprovalRecord",
    "AuditEvent",
    "Department",
    "Employee",
    "Event",
    "EventEmployee",
    "RaciAssignment",
    "Task",
]
