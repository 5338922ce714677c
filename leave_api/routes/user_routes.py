from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from leave_api.auth.dependencies import require_admin
from leave_api.auth.jwt_handler import ClaimSet
from leave_api.database import get_db
from leave_api.models.user import Role
from leave_api.services import user_service

router = APIRouter(tags=['users'])


class UserResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    email: str
    name: str | None = None
    role: Role
    created_at: datetime
    updated_at: datetime


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str | None = Field(default=None, max_length=100)
    email: str | None = None
    role: Role | None = None


class MessageResponse(BaseModel):
    message: str


@router.get('', response_model=list[UserResponse])
def list_users(identity: ClaimSet = Depends(require_admin), db: Session = Depends(get_db)):
    return user_service.list_users(db, identity)


@router.get('/{user_id}', response_model=UserResponse)
def get_user(user_id: int, identity: ClaimSet = Depends(require_admin), db: Session = Depends(get_db)):
    return user_service.get_user(db, user_id, identity)


@router.put('/{user_id}', response_model=UserResponse)
def update_user(
    user_id: int,
    data: UpdateUserRequest,
    identity: ClaimSet = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return user_service.update_user(
        db,
        user_id,
        identity,
        name=data.name,
        email=data.email,
        role=data.role,
    )


@router.delete('/{user_id}', response_model=MessageResponse, status_code=status.HTTP_200_OK)
def delete_user(user_id: int, identity: ClaimSet = Depends(require_admin), db: Session = Depends(get_db)):
    user_service.delete_user(db, user_id, identity)
    return MessageResponse(message='User deleted.')
