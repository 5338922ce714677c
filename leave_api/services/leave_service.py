"""Leave request lifecycle.

A leave starts as PENDING and may move once, to APPROVED or REJECTED. The
transition is a single conditional UPDATE, so two admins racing on the same
leave cannot both decide it.
"""
import logging
from datetime import date
from typing import Optional, Union

from sqlalchemy.orm import Session, joinedload

from leave_api.auth.dependencies import ensure_role
from leave_api.auth.jwt_handler import ClaimSet
from leave_api.core.errors import LeaveNotPending, NotFound, Unauthenticated, ValidationError
from leave_api.models.leave import Leave, LeaveStatus
from leave_api.models.user import Role, User

logger = logging.getLogger(__name__)

MAX_LEAVE_TYPE_LENGTH = 50
TERMINAL_STATUSES = (LeaveStatus.APPROVED, LeaveStatus.REJECTED)


def _parse_date(value: Union[date, str], field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"{field_name} must be a valid date (YYYY-MM-DD)") from exc


def parse_status(value: Union[LeaveStatus, str]) -> LeaveStatus:
    if isinstance(value, LeaveStatus):
        return value
    try:
        return LeaveStatus(str(value).strip().upper())
    except ValueError as exc:
        allowed = ", ".join(item.value for item in LeaveStatus)
        raise ValidationError(f"status must be one of: {allowed}") from exc


def create_leave(
    db: Session,
    identity: ClaimSet,
    leave_type: str,
    start_date: Union[date, str],
    end_date: Union[date, str],
    reason: Optional[str] = None,
) -> Leave:
    normalized_type = (leave_type or "").strip()
    if not normalized_type:
        raise ValidationError("type is required")
    if len(normalized_type) > MAX_LEAVE_TYPE_LENGTH:
        raise ValidationError(f"type must be {MAX_LEAVE_TYPE_LENGTH} characters or fewer")

    start = _parse_date(start_date, "startDate")
    end = _parse_date(end_date, "endDate")
    if start > end:
        raise ValidationError("startDate must be on or before endDate")

    # A token can outlive its user; the owner must still exist.
    if db.get(User, identity.subject_id) is None:
        raise Unauthenticated("User no longer exists")

    leave = Leave(
        type=normalized_type,
        start_date=start,
        end_date=end,
        reason=reason.strip() if reason and reason.strip() else None,
        status=LeaveStatus.PENDING,
        user_id=identity.subject_id,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    db.refresh(leave, ["user"])

    logger.info("User %s filed leave %s", identity.subject_id, leave.id)
    return leave


def list_visible(db: Session, identity: ClaimSet) -> list[Leave]:
    query = db.query(Leave).options(joinedload(Leave.user))
    if identity.role is not Role.ADMIN:
        query = query.filter(Leave.user_id == identity.subject_id)
    return query.order_by(Leave.id.asc()).all()


def get_by_id(db: Session, leave_id: int, identity: ClaimSet) -> Leave:
    leave = db.get(Leave, leave_id, options=[joinedload(Leave.user)])
    # Other users' leaves are reported as missing to non-admins.
    if leave is None or (identity.role is not Role.ADMIN and leave.user_id != identity.subject_id):
        raise NotFound("Leave request not found.")
    return leave


def set_status(
    db: Session,
    leave_id: int,
    new_status: Union[LeaveStatus, str],
    identity: ClaimSet,
) -> Leave:
    ensure_role(identity, Role.ADMIN)

    target = parse_status(new_status)
    if target not in TERMINAL_STATUSES:
        raise ValidationError("status must be APPROVED or REJECTED")

    updated = (
        db.query(Leave)
        .filter(Leave.id == leave_id, Leave.status == LeaveStatus.PENDING)
        .update({Leave.status: target}, synchronize_session=False)
    )
    db.commit()

    leave = db.get(Leave, leave_id, options=[joinedload(Leave.user)])
    if leave is None:
        raise NotFound("Leave request not found.")
    if updated == 0:
        logger.info(
            "Admin %s tried to set leave %s to %s but it is already %s",
            identity.subject_id,
            leave_id,
            target.value,
            leave.status.value,
        )
        raise LeaveNotPending(f"Leave request is already {leave.status.value}.")

    logger.info("Admin %s set leave %s to %s", identity.subject_id, leave_id, target.value)
    return leave


def approve(db: Session, leave_id: int, identity: ClaimSet) -> Leave:
    return set_status(db, leave_id, LeaveStatus.APPROVED, identity)


def reject(db: Session, leave_id: int, identity: ClaimSet) -> Leave:
    return set_status(db, leave_id, LeaveStatus.REJECTED, identity)
