"""Approval record listing and decision endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from raciflow.db.dependencies import get_db_session
from raciflow.services.raci_service import RaciService

router = APIRouter(tags=["approvals"])


class DecisionPayload(BaseModel):
    decision: str = Field(min_length=1, max_length=32)
    reason: str | None = Field(default=None, max_length=2000)


def _raci_service(db: Session) -> RaciService:
    return RaciService(db)


@router.get("/events/{event_id}/approvals")
def list_event_approvals(
    event_id: int,
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _raci_service(db)
    return [service.serialize_approval_record(record) for record in service.list_event_approvals(event_id)]


@router.post("/approvals/{approval_record_id}/decision")
def decide_approval(
    approval_record_id: int,
    payload: DecisionPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    event = service.decide(approval_record_id, payload.decision, payload.reason)
    return service.serialize_event(event)


@router.get("/approvers/{approver_id}/approvals")
def list_pending_approvals(
    approver_id: int,
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _raci_service(db).list_pending_approvals(approver_id)
