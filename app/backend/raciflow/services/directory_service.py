"""Employee directory: departments, rosters and approver resolution."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from raciflow.engine.errors import ConflictError, NotFoundError
from raciflow.engine.types import EmployeeRef
from raciflow.models.entities import Department, Employee
from raciflow.repositories.directory_repository import DirectoryRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DepartmentCreateData:
    name: str


@dataclass(slots=True)
class EmployeeCreateData:
    name: str
    designation: str | None = None
    email: str | None = None
    is_hod: bool = False


def to_employee_ref(employee: Employee) -> EmployeeRef:
    return EmployeeRef(
        id=employee.id,
        name=employee.name,
        designation=employee.designation,
        email=employee.email,
        department_id=employee.department_id,
    )


class EmployeeDirectory:
    """Read and maintain the employee directory consumed by the matrix engine."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = DirectoryRepository(db)

    @staticmethod
    def serialize_department(department: Department) -> dict[str, object]:
        return {
            "id": department.id,
            "name": department.name,
            "hod_employee_id": department.hod_employee_id,
            "created_at": department.created_at.isoformat(),
        }

    @staticmethod
    def serialize_employee(employee: Employee | EmployeeRef) -> dict[str, object]:
        return {
            "id": employee.id,
            "department_id": employee.department_id,
            "name": employee.name,
            "designation": employee.designation,
            "email": employee.email,
        }

    def get_department(self, department_id: int) -> Department:
        department = self.repo.get_department(department_id)
        if department is None:
            raise NotFoundError(
                "Department not found.",
                details={"department_id": department_id},
                error_code="DepartmentNotFound",
            )
        return department

    def create_department(self, data: DepartmentCreateData) -> Department:
        now = datetime.now(timezone.utc)
        department = Department(name=data.name.strip(), created_at=now, updated_at=now)
        self.repo.add_department(department)
        self.db.commit()
        self.db.refresh(department)
        return department

    def add_employee(self, department_id: int, data: EmployeeCreateData) -> Employee:
        department = self.get_department(department_id)
        employee = Employee(
            department_id=department.id,
            name=data.name.strip(),
            designation=data.designation.strip() if data.designation else None,
            email=data.email.strip() if data.email else None,
        )
        self.repo.add_employee(employee)
        if data.is_hod:
            department.hod_employee_id = employee.id
            department.updated_at = datetime.now(timezone.utc)

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Employee could not be stored.") from exc

        self.db.refresh(employee)
        return employee

    def list_department_employees(self, department_id: int) -> list[EmployeeRef]:
        self.get_department(department_id)
        return [to_employee_ref(row) for row in self.repo.list_department_employees(department_id)]

    def list_event_employees(self, event_id: int) -> list[EmployeeRef]:
        return [to_employee_ref(row) for row in self.repo.list_event_employees(event_id)]

    def get_employee(self, employee_id: int) -> EmployeeRef:
        employee = self.repo.get_employee(employee_id)
        if employee is None:
            raise NotFoundError(
                "Employee not found.",
                details={"employee_id": employee_id},
                error_code="EmployeeNotFound",
            )
        return to_employee_ref(employee)

    def get_employees(self, employee_ids: Iterable[int]) -> dict[int, EmployeeRef]:
        return {row.id: to_employee_ref(row) for row in self.repo.list_employees_by_ids(employee_ids)}

    def resolve_approvers(self, department_id: int) -> list[EmployeeRef]:
        """Default approvers for a department's events: its head of department."""

        department = self.get_department(department_id)
        if department.hod_employee_id is None:
            logger.info("Department %s has no head of department configured", department_id)
            return []
        hod = self.repo.get_employee(department.hod_employee_id)
        if hod is None:
            logger.warning(
                "Department %s points at missing head of department %s",
                department_id,
                department.hod_employee_id,
            )
            return []
        return [to_employee_ref(hod)]
