"""Event, task and event-employee endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from raciflow.db.dependencies import get_db_session
from raciflow.services.directory_service import EmployeeDirectory
from raciflow.services.raci_service import RaciService, TaskCreateData

router = APIRouter(tags=["events"])


class EventEmployeesPayload(BaseModel):
    employee_ids: list[int] = Field(min_length=1)


class TaskCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


def _raci_service(db: Session) -> RaciService:
    return RaciService(db)


@router.get("/events/{event_id}")
def get_event(
    event_id: int,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    return service.serialize_event(service.get_event(event_id))


@router.post("/events/{event_id}/employees")
def attach_event_employees(
    event_id: int,
    payload: EventEmployeesPayload,
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _raci_service(db)
    employees = service.attach_event_employees(event_id, payload.employee_ids)
    return [EmployeeDirectory.serialize_employee(employee) for employee in employees]


@router.post("/events/{event_id}/tasks", status_code=status.HTTP_201_CREATED)
def create_event_task(
    event_id: int,
    payload: TaskCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    task = service.create_task(
        event_id,
        TaskCreateData(name=payload.name, description=payload.description),
    )
    return service.serialize_task(task)


@router.get("/events/{event_id}/tasks")
def list_event_tasks(
    event_id: int,
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _raci_service(db)
    return [service.serialize_task(task) for task in service.list_tasks(event_id)]


@router.get("/employees/{employee_id}/assignments")
def list_employee_assignments(
    employee_id: int,
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _raci_service(db).list_employee_assignments(employee_id)
