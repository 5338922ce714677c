from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from leave_api.auth.dependencies import get_current_identity, require_admin
from leave_api.auth.jwt_handler import ClaimSet
from leave_api.database import get_db
from leave_api.models.leave import LeaveStatus
from leave_api.services import leave_service

router = APIRouter(tags=['leaves'])

MAX_REASON_LENGTH = 500


class CreateLeaveRequest(BaseModel):
    # Unknown fields such as a client-supplied userId are dropped.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')

    type: str = Field(min_length=1, max_length=leave_service.MAX_LEAVE_TYPE_LENGTH)
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=MAX_REASON_LENGTH)


class UpdateLeaveStatusRequest(BaseModel):
    status: str


class LeaveOwnerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str | None = None


class LeaveResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    type: str
    start_date: date
    end_date: date
    reason: str | None = None
    status: LeaveStatus
    user_id: int
    user: LeaveOwnerResponse | None = None
    created_at: datetime
    updated_at: datetime


@router.post('', response_model=LeaveResponse, status_code=status.HTTP_201_CREATED)
def create_leave(
    data: CreateLeaveRequest,
    identity: ClaimSet = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return leave_service.create_leave(
        db,
        identity,
        leave_type=data.type,
        start_date=data.start_date,
        end_date=data.end_date,
        reason=data.reason,
    )


@router.get('', response_model=list[LeaveResponse])
def list_leaves(identity: ClaimSet = Depends(get_current_identity), db: Session = Depends(get_db)):
    return leave_service.list_visible(db, identity)


@router.get('/{leave_id}', response_model=LeaveResponse)
def get_leave(leave_id: int, identity: ClaimSet = Depends(get_current_identity), db: Session = Depends(get_db)):
    return leave_service.get_by_id(db, leave_id, identity)


@router.put('/{leave_id}/status', response_model=LeaveResponse)
def update_leave_status(
    leave_id: int,
    data: UpdateLeaveStatusRequest,
    identity: ClaimSet = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return leave_service.set_status(db, leave_id, data.status, identity)


@router.put('/{leave_id}/approve', response_model=LeaveResponse)
def approve_leave(leave_id: int, identity: ClaimSet = Depends(require_admin), db: Session = Depends(get_db)):
    return leave_service.approve(db, leave_id, identity)


@router.put('/{leave_id}/reject', response_model=LeaveResponse)
def reject_leave(leave_id: int, identity: ClaimSet = Depends(require_admin), db: Session = Depends(get_db)):
    return leave_service.reject(db, leave_id, identity)
