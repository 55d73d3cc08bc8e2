"""RACI matrix read, write, validation and submission endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.orm import Session

from raciflow.db.dependencies import get_db_session
from raciflow.engine.builder import matrix_to_payload
from raciflow.services.raci_service import RaciService

router = APIRouter(tags=["matrix"])

Assignee = int | dict[str, Any]


class MatrixTaskPayload(BaseModel):
    task_id: int = Field(validation_alias=AliasChoices("task_id", "taskId", "id"))
    responsible: list[Assignee] = Field(default_factory=list)
    accountable: list[Assignee] = Field(default_factory=list)
    consulted: list[Assignee] = Field(default_factory=list)
    informed: list[Assignee] = Field(default_factory=list)
    # Shape returned by GET /events/{id}/matrix; wins over the flat role lists.
    raci: dict[str, list[Assignee]] | None = None
    financial_limits: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("financial_limits", "financialLimits"),
    )


class MatrixPayload(BaseModel):
    tasks: list[MatrixTaskPayload] = Field(default_factory=list)
    financial_limits: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("financial_limits", "financialLimits"),
    )


class SubmitPayload(BaseModel):
    approver_ids: list[int] | None = None
    matrix: MatrixPayload | None = None


def _raci_service(db: Session) -> RaciService:
    return RaciService(db)


@router.get("/events/{event_id}/matrix")
def get_event_matrix(
    event_id: int,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    return service.serialize_matrix_view(service.build_matrix_view(event_id))


@router.put("/events/{event_id}/matrix")
def put_event_matrix(
    event_id: int,
    payload: MatrixPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    matrix = service.save_matrix(event_id, payload.model_dump())
    event = service.get_event(event_id)
    return {**matrix_to_payload(matrix), "status": event.status.value}


@router.post("/events/{event_id}/matrix:validate")
@router.post("/events/{event_id}/matrix/validate")
def validate_event_matrix(
    event_id: int,
    payload: MatrixPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    result = service.validate_matrix(event_id, payload.model_dump())
    return {
        "valid": result.ok,
        "violations": [violation.to_dict() for violation in result.violations],
        "matrix": matrix_to_payload(result.matrix) if result.matrix is not None else None,
    }


@router.delete("/events/{event_id}/matrix", status_code=status.HTTP_204_NO_CONTENT)
def delete_event_matrix(
    event_id: int,
    db: Session = Depends(get_db_session),
) -> Response:
    _raci_service(db).delete_matrix(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/events/{event_id}/submit")
def submit_event_matrix(
    event_id: int,
    payload: SubmitPayload | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    payload = payload or SubmitPayload()
    records = service.submit_matrix(
        event_id,
        approver_ids=payload.approver_ids,
        payload=payload.matrix.model_dump() if payload.matrix is not None else None,
    )
    return {
        "event": service.serialize_event(service.get_event(event_id)),
        "approval_records": [service.serialize_approval_record(record) for record in records],
    }
