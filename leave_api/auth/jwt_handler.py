from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from leave_api.core import config
from leave_api.core.errors import TokenExpired, TokenInvalid
from leave_api.models.user import Role

REQUIRED_CLAIMS = ["sub", "role", "iat", "exp"]


@dataclass(frozen=True)
class ClaimSet:
    subject_id: int
    role: Role
    issued_at: datetime
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def create_access_token(subject_id: int, role: Role, expires_minutes: int | None = None) -> str:
    expire_minutes = config.JWT_EXPIRES_MINUTES if expires_minutes is None else expires_minutes
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + timedelta(minutes=expire_minutes)
    payload = {
        "sub": str(subject_id),
        "role": Role(role).value,
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> ClaimSet:
    try:
        payload = jwt.decode(
            token,
            config.JWT_SECRET_KEY,
            algorithms=[config.JWT_ALGORITHM],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except jwt.InvalidTokenError as exc:
        raise TokenInvalid() from exc

    try:
        subject_id = int(payload["sub"])
        role = Role(payload["role"])
    except (TypeError, ValueError) as exc:
        raise TokenInvalid("Invalid token claims") from exc

    return ClaimSet(
        subject_id=subject_id,
        role=role,
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
