from datetime import datetime

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from leave_api.auth.dependencies import ensure_role, get_current_identity, identity_from_credentials, security
from leave_api.auth.jwt_handler import ClaimSet
from leave_api.database import get_db
from leave_api.models.user import Role
from leave_api.routes.user_routes import UserResponse
from leave_api.services import auth_service

router = APIRouter(tags=['auth'])


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str | None = Field(default=None, max_length=100)
    role: Role | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'


class IdentityResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: int
    role: Role
    expires_at: datetime


@router.post('/register', response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
):
    role = data.role or Role.USER
    if role is Role.ADMIN:
        # Only an existing admin may create another admin. Plain registration ignores any token.
        identity = identity_from_credentials(request, credentials) if credentials else None
        ensure_role(identity, Role.ADMIN)

    return auth_service.register(db, data.email, data.password, name=data.name, role=role)


@router.post('/login', response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    token = auth_service.login(db, data.email, data.password)
    return LoginResponse(access_token=token)


@router.get('/me', response_model=IdentityResponse)
def me(identity: ClaimSet = Depends(get_current_identity)):
    return IdentityResponse(user_id=identity.subject_id, role=identity.role, expires_at=identity.expires_at)
