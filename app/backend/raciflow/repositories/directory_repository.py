"""Repository helpers for departments and their employees."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from raciflow.models.entities import Department, Employee, EventEmployee


class DirectoryRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_department(self, department_id: int) -> Department | None:
        return self.db.scalar(select(Department).where(Department.id == department_id))

    def add_department(self, department: Department) -> Department:
        self.db.add(department)
        self.db.flush()
        return department

    def get_employee(self, employee_id: int) -> Employee | None:
        return self.db.scalar(select(Employee).where(Employee.id == employee_id))

    def list_employees_by_ids(self, employee_ids: Iterable[int]) -> list[Employee]:
        ids = list(employee_ids)
        if not ids:
            return []
        return self.db.scalars(
            select(Employee).where(Employee.id.in_(ids)).order_by(Employee.id.asc())
        ).all()

    def list_department_employees(self, department_id: int) -> list[Employee]:
        return self.db.scalars(
            select(Employee)
            .where(Employee.department_id == department_id)
            .order_by(Employee.name.asc(), Employee.id.asc())
        ).all()

    def list_event_employees(self, event_id: int) -> list[Employee]:
        return self.db.scalars(
            select(Employee)
            .join(EventEmployee, EventEmployee.employee_id == Employee.id)
            .where(EventEmployee.event_id == event_id)
            .order_by(Employee.name.asc(), Employee.id.asc())
        ).all()

    def add_employee(self, employee: Employee) -> Employee:
        self.db.add(employee)
        self.db.flush()
        return employee
