"""Plain data types shared by the RACI matrix and approval engine."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


class RaciRole(str, enum.Enum):
    RESPONSIBLE = "responsible"
    ACCOUNTABLE = "accountable"
    CONSULTED = "consulted"
    INFORMED = "informed"

    @property
    def code(self) -> str:
        """Single-letter code used by legacy storage (R/A/C/I)."""

        return self.value[0].upper()

    @property
    def carries_limits(self) -> bool:
        return self in OWNER_ROLES

    @property
    def requires_sign_off(self) -> bool:
        return self in OWNER_ROLES

    @classmethod
    def from_wire(cls, value: str | RaciRole) -> RaciRole:
        """Parse a role from its value, its member name or its letter code."""

        if isinstance(value, RaciRole):
            return value
        text = str(value).strip()
        lowered = text.lower()
        for role in cls:
            if lowered == role.value or text.upper() == role.code:
                return role
        raise ValueError(f"Unknown RACI role: {value!r}")


ROLE_ORDER: tuple[RaciRole, ...] = tuple(RaciRole)
OWNER_ROLES = frozenset({RaciRole.RESPONSIBLE, RaciRole.ACCOUNTABLE})


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING


@dataclass(frozen=True, slots=True)
class EmployeeRef:
    id: int
    name: str
    designation: str | None = None
    email: str | None = None
    department_id: int | None = None


@dataclass(frozen=True, slots=True)
class TaskRow:
    id: int
    name: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class RoleAssignment:
    """One employee holding one role on one task."""

    task_id: int
    role: RaciRole
    employee_id: int


@dataclass(frozen=True, slots=True)
class SlotSelection:
    """An interactive edit of a role slot; ``employee_id=None`` clears the slot."""

    task_id: int
    role: RaciRole
    employee_id: int | None


@dataclass(frozen=True, slots=True, order=True)
class LimitKey:
    task_id: int
    role: RaciRole
    employee_id: int

    @property
    def assignment(self) -> RoleAssignment:
        return RoleAssignment(task_id=self.task_id, role=self.role, employee_id=self.employee_id)


@dataclass(frozen=True, slots=True)
class FinancialLimit:
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None

    def to_wire(self) -> dict[str, str | None]:
        return {
            "min": str(self.min_amount) if self.min_amount is not None else None,
            "max": str(self.max_amount) if self.max_amount is not None else None,
        }


@dataclass(frozen=True, slots=True)
class Matrix:
    """Canonical task x role grid for one event.

    A role slot holds at most one employee: ``slots`` maps ``(task_id, role)``
    to a single employee id even though legacy payloads store arrays per role.
    An employee holds at most one role per task.
    """

    event_id: int
    tasks: tuple[TaskRow, ...] = ()
    slots: Mapping[tuple[int, RaciRole], int] = field(default_factory=dict)
    limits: Mapping[LimitKey, FinancialLimit] = field(default_factory=dict)
    employees: tuple[EmployeeRef, ...] = ()

    def employee_for(self, task_id: int, role: RaciRole) -> int | None:
        return self.slots.get((task_id, role))

    def task_slots(self, task_id: int) -> dict[RaciRole, int]:
        return {
            role: self.slots[(task_id, role)]
            for role in ROLE_ORDER
            if (task_id, role) in self.slots
        }

    def assignments(self) -> list[RoleAssignment]:
        """Assignments in task order, then R/A/C/I order."""

        task_ids = [task.id for task in self.tasks]
        known = set(task_ids)
        task_ids.extend(sorted({task_id for task_id, _ in self.slots if task_id not in known}))
        return [
            RoleAssignment(task_id=task_id, role=role, employee_id=employee_id)
            for task_id in task_ids
            for role, employee_id in self.task_slots(task_id).items()
        ]

    def limit_for(self, assignment: RoleAssignment) -> FinancialLimit | None:
        return self.limits.get(LimitKey(assignment.task_id, assignment.role, assignment.employee_id))

    def filled_task_ids(self) -> list[int]:
        return list(dict.fromkeys(assignment.task_id for assignment in self.assignments()))

    @property
    def is_empty(self) -> bool:
        return not self.slots

    def employee(self, employee_id: int) -> EmployeeRef | None:
        for employee in self.employees:
            if employee.id == employee_id:
                return employee
        return None


@dataclass(slots=True)
class MatrixCandidate:
    """Unvalidated matrix proposal.

    ``assignments`` are applied in order (last write wins per employee and
    task); ``limits`` hold raw ``{"min", "max"}`` values keyed by parsed
    composite keys.
    """

    event_id: int
    tasks: tuple[TaskRow, ...]
    assignments: list[RoleAssignment]
    limits: dict[LimitKey, object]
    employees: tuple[EmployeeRef, ...]

    @classmethod
    def from_matrix(cls, matrix: Matrix) -> MatrixCandidate:
        return cls(
            event_id=matrix.event_id,
            tasks=matrix.tasks,
            assignments=matrix.assignments(),
            limits=dict(matrix.limits),
            employees=matrix.employees,
        )


@dataclass(frozen=True, slots=True)
class ApprovalRecordData:
    """Storage-independent view of one approval record."""

    event_id: int
    task_id: int
    role: RaciRole
    employee_id: int
    approver_id: int
    approval_level: int
    status: ApprovalStatus = ApprovalStatus.PENDING
    reason: str | None = None
    decided_at: datetime | None = None
    limit: FinancialLimit | None = None
    id: int | None = None

    @property
    def assignment(self) -> RoleAssignment:
        return RoleAssignment(task_id=self.task_id, role=self.role, employee_id=self.employee_id)
