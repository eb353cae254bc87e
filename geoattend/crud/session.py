# geoattend/crud/session.py
"""Session lifecycle (OPEN -> CLOSED) and QR token issuance.

Expiry is enforced lazily: nothing runs on a timer, every access compares
ages against clock.utcnow().
"""
import logging
import math
from datetime import timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geoattend.core import clock
from geoattend.core.config import settings
from geoattend.core.errors import ErrorKind, InvalidInput, NotAuthorized, NotFound, StateConflict
from geoattend.core.geo import validate_coordinates
from geoattend.core.tokens import generate_attendance_token, is_expired, token_expiry
from geoattend.crud.user import get_user_by_id, get_student
from geoattend.db.models.session import AttendanceSession

logger = logging.getLogger(__name__)


def session_timeout() -> timedelta | None:
    seconds = settings.SESSION_TIMEOUT_SECONDS
    return timedelta(seconds=seconds) if seconds else None


def is_stale(session: AttendanceSession, now) -> bool:
    timeout = session_timeout()
    return timeout is not None and now - session.created_at > timeout


def is_accepting(session: AttendanceSession, now) -> bool:
    return bool(session.is_open) and not is_stale(session, now)


def session_summary(session: AttendanceSession) -> dict:
    return {
        "session_id": session.id,
        "title": session.title,
        "department": session.department,
        "year": session.year,
        "allowed_radius": session.allowed_radius,
        "has_anchor": session.has_anchor,
    }


def get_session(db: Session, session_id: int):
    return db.query(AttendanceSession).filter(AttendanceSession.id == session_id).first()


def get_session_by_token(db: Session, token: str):
    if not token:
        return None
    return db.query(AttendanceSession).filter(AttendanceSession.current_token == token).first()


def require_session(db: Session, session_id: int) -> AttendanceSession:
    session = get_session(db, session_id)
    if not session:
        raise NotFound(ErrorKind.SESSION_NOT_FOUND, "Session not found")
    return session


def _require_owner(session: AttendanceSession, teacher_id: int):
    if session.teacher_id != teacher_id:
        raise NotAuthorized(ErrorKind.NOT_SESSION_OWNER, "Only the teacher who opened this session can do that")


def create_session(
    db: Session,
    title: str,
    department: str,
    year: int,
    teacher_id: int,
    latitude: float | None = None,
    longitude: float | None = None,
    allowed_radius: float | None = None,
) -> AttendanceSession:
    teacher = get_user_by_id(db, teacher_id)
    if not teacher or teacher.role != "teacher":
        raise NotAuthorized(ErrorKind.NOT_SESSION_OWNER, "Only teachers can open sessions")

    if not title or not title.strip():
        raise InvalidInput(ErrorKind.INVALID_INPUT, "Title is required")
    if not department or not department.strip():
        raise InvalidInput(ErrorKind.INVALID_INPUT, "Department is required")

    if (latitude is None) != (longitude is None):
        raise InvalidInput(ErrorKind.INVALID_COORDINATES, "Latitude and longitude must be given together")
    if latitude is not None:
        validate_coordinates(latitude, longitude)

    if allowed_radius is None:
        allowed_radius = settings.DEFAULT_ALLOWED_RADIUS_METERS
    if not math.isfinite(allowed_radius) or allowed_radius <= 0:
        raise InvalidInput(ErrorKind.INVALID_INPUT, "Allowed radius must be a positive number of meters")

    session = AttendanceSession(
        title=title.strip(),
        department=department.strip(),
        year=year,
        teacher_id=teacher_id,
        is_open=True,
        created_at=clock.utcnow(),
        closed_at=None,
        latitude=latitude,
        longitude=longitude,
        allowed_radius=allowed_radius,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info(
        f"[Sessions] Opened session_id={session.id} '{session.title}' for {session.department}/{session.year} "
        f"anchor={'yes' if session.has_anchor else 'no'} radius={session.allowed_radius}m"
    )
    return session


def _close(db: Session, session: AttendanceSession, reason: str) -> int:
    """Close the session and mark every missing eligible student absent, in one commit."""
    from geoattend.crud.attendance import close_and_reconcile

    for attempt in (1, 2):
        now = clock.utcnow()
        session.is_open = False
        session.closed_at = now
        absent = close_and_reconcile(db, session, now)
        try:
            db.commit()
        except IntegrityError:
            # A check-in landed between the diff and the commit; recompute once.
            db.rollback()
            if attempt == 2:
                raise
            continue
        logger.info(f"[Sessions] Closed session_id={session.id} ({reason}), marked {absent} absent")
        return absent


def expire_if_stale(db: Session, session: AttendanceSession) -> bool:
    if session.is_open and is_stale(session, clock.utcnow()):
        _close(db, session, reason="expired")
        return True
    return False


def require_open(db: Session, session: AttendanceSession) -> AttendanceSession:
    expire_if_stale(db, session)
    if not session.is_open:
        raise StateConflict(ErrorKind.SESSION_CLOSED, "Session is closed")
    return session


def ensure_open(db: Session, session_id: int) -> AttendanceSession:
    return require_open(db, require_session(db, session_id))


def close_session(db: Session, session_id: int, teacher_id: int) -> dict:
    session = require_session(db, session_id)
    _require_owner(session, teacher_id)
    if not session.is_open:
        raise StateConflict(ErrorKind.SESSION_CLOSED, "Session is already closed")

    absent = _close(db, session, reason=f"closed by teacher_id={teacher_id}")
    return {"ok": True, "absent_marked": absent}


def reconcile_session(db: Session, session_id: int, teacher_id: int) -> dict:
    """Manual absence sweep. An open session is closed first, since the sweep is final."""
    from geoattend.crud.attendance import close_and_reconcile

    session = require_session(db, session_id)
    _require_owner(session, teacher_id)
    if session.is_open:
        absent = _close(db, session, reason=f"reconciled by teacher_id={teacher_id}")
        return {"ok": True, "absent_marked": absent}

    absent = close_and_reconcile(db, session, clock.utcnow())
    db.commit()
    logger.info(f"[Sessions] Reconciled closed session_id={session.id}, marked {absent} absent")
    return {"ok": True, "absent_marked": absent}


def close_expired_sessions(db: Session) -> dict:
    now = clock.utcnow()
    open_sessions = db.query(AttendanceSession).filter(AttendanceSession.is_open.is_(True)).all()

    closed_count = 0
    for session in open_sessions:
        if is_stale(session, now):
            _close(db, session, reason="expired")
            closed_count += 1

    if closed_count:
        logger.info(f"[Sessions] Expiry sweep closed {closed_count} session(s)")
    return {"closed_count": closed_count}


def list_open_for_cohort(db: Session, department: str, year: int):
    now = clock.utcnow()
    sessions = (
        db.query(AttendanceSession)
        .filter(
            AttendanceSession.department == department,
            AttendanceSession.year == year,
            AttendanceSession.is_open.is_(True),
        )
        .order_by(AttendanceSession.created_at.desc())
        .all()
    )
    # Aged-out sessions the sweep hasn't reached yet are hidden too
    return [s for s in sessions if not is_stale(s, now)]


def list_open_for_student(db: Session, student_id: int):
    student = get_student(db, student_id)
    if not student:
        return []
    return list_open_for_cohort(db, student.department, student.year)


def list_teacher_sessions(db: Session, teacher_id: int):
    return (
        db.query(AttendanceSession)
        .filter(AttendanceSession.teacher_id == teacher_id)
        .order_by(AttendanceSession.created_at.desc())
        .all()
    )


def issue_token(db: Session, session_id: int, teacher_id: int) -> dict:
    session = require_session(db, session_id)
    _require_owner(session, teacher_id)
    require_open(db, session)

    now = clock.utcnow()
    token = generate_attendance_token(now)
    expiry = token_expiry(now)

    # Single slot: the previous token and all its redemptions are gone.
    session.current_token = token
    session.token_expiry = expiry
    session.redemptions.clear()
    db.commit()

    logger.info(f"[Tokens] Issued token for session_id={session.id}, expires {expiry.isoformat()}")
    return {"token": token, "expiry": expiry, "session_id": session.id}


def validate_token(db: Session, token: str) -> dict:
    """Read-only verdict on a token. Never consumes it and never closes the session."""
    session = get_session_by_token(db, token)
    if not session:
        return {"valid": False, "kind": ErrorKind.INVALID_TOKEN.value, "reason": "Invalid QR code"}

    now = clock.utcnow()
    if not is_accepting(session, now):
        return {"valid": False, "kind": ErrorKind.SESSION_CLOSED.value, "reason": "Session is closed"}

    if is_expired(session.token_expiry, now):
        return {"valid": False, "kind": ErrorKind.TOKEN_EXPIRED.value, "reason": "QR code has expired"}

    return {"valid": True, "expiry": session.token_expiry, "session": session_summary(session)}
