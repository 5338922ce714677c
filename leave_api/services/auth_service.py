# Registration and login
import logging
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leave_api.auth.jwt_handler import create_access_token
from leave_api.auth.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from leave_api.core import config
from leave_api.core.errors import DuplicateEmail, HashFormatError, InvalidCredentials, ValidationError
from leave_api.models.user import Role, User

logger = logging.getLogger(__name__)


# Built at import so every unknown-email login costs exactly one bcrypt check.
_DUMMY_DIGEST = hash_password("not-a-real-password")


def normalize_email(email: str) -> str:
    """Validate an email address and return it stripped and lower-cased.

    Raises ValidationError when the address is malformed.
    """
    candidate = (email or "").strip()
    try:
        validate_email(candidate, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError("email must be an email", errors=[str(exc)]) from exc
    return candidate.lower()


def validate_password(password: str) -> None:
    if password is None or len(password) < config.PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def register(
    db: Session,
    email: str,
    password: str,
    name: Optional[str] = None,
    role: Role = Role.USER,
) -> User:
    """Create a user with a hashed password.

    The unique index on ``users.email`` is the only duplicate check, so two
    concurrent registrations for the same address resolve in the database.
    """
    normalized_email = normalize_email(email)
    validate_password(password)

    user = User(
        email=normalized_email,
        hashed_password=hash_password(password),
        name=name.strip() if name else None,
        role=Role(role),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateEmail() from exc
    db.refresh(user)

    logger.info("Registered user %s with role %s", user.id, user.role.value)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a user by email and password.

    Returns User object if credentials are valid, None otherwise.
    """
    normalized_email = (email or "").strip().lower()
    user = db.query(User).filter(User.email == normalized_email).first()

    if not user:
        # Response time must not depend on whether the email exists.
        verify_password(password, _DUMMY_DIGEST)
        return None

    if not verify_password(password, user.hashed_password):
        return None

    return user


def login(db: Session, email: str, password: str) -> str:
    try:
        user = authenticate_user(db, email, password)
    except HashFormatError as exc:
        logger.error("Stored password hash for a login attempt is malformed")
        raise InvalidCredentials() from exc
    if user is None:
        logger.info("Rejected login attempt")
        raise InvalidCredentials()

    return create_access_token(subject_id=user.id, role=user.role)
