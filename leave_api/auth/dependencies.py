"""Request-scoped authentication and role checks.

``get_current_identity`` is the authentication stage and ``require_roles``
builds the authorization stage on top of it. Both run as FastAPI
dependencies, so a rejected request never reaches the route body.
"""
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from leave_api.auth import jwt_handler
from leave_api.auth.jwt_handler import ClaimSet
from leave_api.core.errors import Forbidden, TokenExpired, TokenInvalid, Unauthenticated
from leave_api.models.user import Role

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def identity_from_credentials(request: Request, credentials: HTTPAuthorizationCredentials) -> ClaimSet:
    try:
        identity = jwt_handler.decode_access_token(credentials.credentials)
    except TokenExpired as exc:
        raise Unauthenticated("Token has expired") from exc
    except TokenInvalid as exc:
        raise Unauthenticated("Invalid token") from exc

    request.state.identity = identity
    return identity


def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> ClaimSet:
    if credentials is None:
        raise Unauthenticated("Missing bearer token")
    return identity_from_credentials(request, credentials)


def require_roles(*roles: Role):
    allowed = frozenset(roles)

    def check_role(identity: ClaimSet = Depends(get_current_identity)) -> ClaimSet:
        if allowed and identity.role not in allowed:
            logger.info("Denied user %s with role %s", identity.subject_id, identity.role.value)
            raise Forbidden("Access denied. Insufficient role.")
        return identity

    return check_role


def ensure_role(identity: ClaimSet, *roles: Role) -> None:
    """Capability check used inside services, independent of route wiring."""
    if identity is None or identity.role not in roles:
        raise Forbidden("Access denied. Insufficient role.")


require_admin = require_roles(Role.ADMIN)
