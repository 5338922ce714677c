# Admin-side user management
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leave_api.auth.dependencies import ensure_role
from leave_api.auth.jwt_handler import ClaimSet
from leave_api.core.errors import DuplicateEmail, Forbidden, NotFound
from leave_api.models.user import Role, User
from leave_api.services.auth_service import normalize_email

logger = logging.getLogger(__name__)


def list_users(db: Session, identity: ClaimSet) -> list[User]:
    ensure_role(identity, Role.ADMIN)
    return db.query(User).order_by(User.id.asc()).all()


def get_user(db: Session, user_id: int, identity: ClaimSet) -> User:
    ensure_role(identity, Role.ADMIN)
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    return user


def update_user(
    db: Session,
    user_id: int,
    identity: ClaimSet,
    name: Optional[str] = None,
    email: Optional[str] = None,
    role: Optional[Role] = None,
) -> User:
    """Apply a partial update. Fields left as None are not touched."""
    user = get_user(db, user_id, identity)
    normalized_email = normalize_email(email) if email is not None else None

    if role is not None and Role(role) is not user.role:
        if user.id == identity.subject_id:
            raise Forbidden("Admins cannot change their own role.")
        user.role = Role(role)

    if name is not None:
        user.name = name.strip() or None

    if normalized_email is not None:
        user.email = normalized_email

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateEmail() from exc
    db.refresh(user)

    logger.info("Admin %s updated user %s", identity.subject_id, user.id)
    return user


def delete_user(db: Session, user_id: int, identity: ClaimSet) -> None:
    user = get_user(db, user_id, identity)
    db.delete(user)
    db.commit()
    logger.info("Admin %s deleted user %s and their leave requests", identity.subject_id, user_id)
