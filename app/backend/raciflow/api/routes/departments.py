"""Department and employee directory endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from raciflow.db.dependencies import get_db_session
from raciflow.services.directory_service import DepartmentCreateData, EmployeeCreateData, EmployeeDirectory
from raciflow.services.raci_service import EventCreateData, RaciService

router = APIRouter(tags=["departments"])


class DepartmentCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class EmployeeCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    designation: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=320)
    is_hod: bool = False


class EventCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


def _directory(db: Session) -> EmployeeDirectory:
    return EmployeeDirectory(db)


@router.post("/departments", status_code=status.HTTP_201_CREATED)
def create_department(
    payload: DepartmentCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    directory = _directory(db)
    department = directory.create_department(DepartmentCreateData(name=payload.name))
    return directory.serialize_department(department)


@router.post("/departments/{department_id}/employees", status_code=status.HTTP_201_CREATED)
def create_department_employee(
    department_id: int,
    payload: EmployeeCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    directory = _directory(db)
    employee = directory.add_employee(
        department_id,
        EmployeeCreateData(
            name=payload.name,
            designation=payload.designation,
            email=payload.email,
            is_hod=payload.is_hod,
        ),
    )
    return directory.serialize_employee(employee)


@router.get("/departments/{department_id}/employees")
def list_department_employees(
    department_id: int,
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    directory = _directory(db)
    return [directory.serialize_employee(row) for row in directory.list_department_employees(department_id)]


@router.post("/departments/{department_id}/events", status_code=status.HTTP_201_CREATED)
def create_department_event(
    department_id: int,
    payload: EventCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = RaciService(db)
    event = service.create_event(
        department_id,
        EventCreateData(name=payload.name, description=payload.description),
    )
    return service.serialize_event(event)


@router.get("/departments/{department_id}/events")
def list_department_events(
    department_id: int,
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = RaciService(db)
    return [service.serialize_event(event) for event in service.list_events(department_id)]
