# geoattend/crud/attendance.py
"""Attendance recording.

A check-in walks a fixed sequence of checks and stops at the first failure:
(device) owned, active and not in simultaneous use -> session open
-> (QR) token valid -> (QR) token not yet used by this student
-> eligibility -> not already marked -> geofence -> commit.
The commit itself relies on the (session_id, student_id) unique constraint,
so two racing requests cannot both produce a record.
"""
import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geoattend.core import clock
from geoattend.core.config import settings
from geoattend.core.errors import (
    AttendanceError,
    ErrorKind,
    InvalidInput,
    NotAuthorized,
    NotFound,
    SecurityViolation,
    StateConflict,
)
from geoattend.core.geo import distance_meters, validate_coordinates, within_radius
from geoattend.core.tokens import is_expired
from geoattend.crud import session as crud_session
from geoattend.crud.device import check_device_security, detect_simultaneous_usage, get_device
from geoattend.crud.user import get_student, get_students_by_cohort
from geoattend.db.models.attendance import AttendanceRecord
from geoattend.db.models.session import AttendanceSession
from geoattend.db.models.token_redemption import TokenRedemption
from geoattend.db.models.user import User

logger = logging.getLogger(__name__)

PRESENT = "present"
ABSENT = "absent"
STATUSES = (PRESENT, ABSENT)


def get_record(db: Session, session_id: int, student_id: int):
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.session_id == session_id,
        AttendanceRecord.student_id == student_id
    ).first()


def _has_redeemed(db: Session, session_id: int, token: str, student_id: int) -> bool:
    return db.query(TokenRedemption).filter(
        TokenRedemption.session_id == session_id,
        TokenRedemption.token == token,
        TokenRedemption.student_id == student_id
    ).first() is not None


def _validate_coords(coords):
    if coords is not None:
        validate_coordinates(coords.latitude, coords.longitude)


def _guard_device(db: Session, student_id: int, device_id: str | None):
    if not device_id:
        if settings.REQUIRE_DEVICE_FOR_ATTENDANCE:
            raise InvalidInput(ErrorKind.DEVICE_REQUIRED, "A registered device is required to mark attendance")
        return None
    # Ownership is checked inside; a foreign or inactive device never gets past it.
    usage = detect_simultaneous_usage(db, student_id, device_id)
    if usage["violation"]:
        raise SecurityViolation(
            ErrorKind.SIMULTANEOUS_DEVICE_USAGE,
            usage["message"],
            extra={"device_id": device_id, "deactivated_count": usage["deactivated_count"]},
        )
    return device_id


def _note_device_use(db: Session, student_id: int, device_id: str | None, session_id: int):
    """Multi-device bookkeeping once the session is known. Warns, never rejects."""
    if device_id is None:
        return None
    check_device_security(db, student_id, device_id, session_id=session_id)
    return get_device(db, device_id)


def _check_eligibility(student: User | None, session: AttendanceSession) -> User:
    if not student:
        raise NotFound(ErrorKind.STUDENT_NOT_FOUND, "Student not found")
    if student.department != session.department or student.year != session.year:
        raise NotAuthorized(ErrorKind.NOT_ELIGIBLE, "You are not eligible for this session")
    return student


def _check_geofence(session: AttendanceSession, coords, require_anchor: bool) -> float | None:
    if not session.has_anchor:
        if require_anchor:
            raise StateConflict(
                ErrorKind.REQUIRES_LOCATION,
                "QR check-in needs a session location. Ask your teacher to set one.",
            )
        return None

    if coords is None:
        raise InvalidInput(ErrorKind.REQUIRES_LOCATION, "Your location is required for this session")

    distance = distance_meters(coords.latitude, coords.longitude, session.latitude, session.longitude)
    if not within_radius(distance, session.allowed_radius):
        raise StateConflict(
            ErrorKind.OUT_OF_RANGE,
            f"You are {distance:.0f}m away from the session location. "
            f"You must be within {session.allowed_radius:.0f}m to mark attendance.",
            extra={"distance_meters": round(distance, 1), "allowed_radius": session.allowed_radius},
        )
    return distance


def _record_presence(db: Session, session: AttendanceSession, student_id: int, coords, device, token=None) -> dict:
    student = _check_eligibility(get_student(db, student_id), session)

    if get_record(db, session.id, student.id):
        raise StateConflict(ErrorKind.ALREADY_MARKED, "Attendance already marked for this session")

    distance = _check_geofence(session, coords, require_anchor=token is not None)

    now = clock.utcnow()
    record = AttendanceRecord(
        session_id=session.id,
        student_id=student.id,
        status=PRESENT,
        method="qr" if token else "direct",
        marked_at=now,
        latitude=coords.latitude if coords else None,
        longitude=coords.longitude if coords else None,
        location_accuracy=getattr(coords, "accuracy", None) if coords else None,
        distance_meters=distance,
        is_manually_set=False,
        last_modified=now,
    )
    db.add(record)
    if token:
        db.add(TokenRedemption(session_id=session.id, token=token, student_id=student.id, redeemed_at=now))
    if device is not None:
        device.last_seen = now
        device.last_used_for_attendance = now

    session_id = session.id
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if token and _has_redeemed(db, session_id, token, student_id):
            raise StateConflict(ErrorKind.ALREADY_USED_TOKEN, "You have already used this QR code")
        raise StateConflict(ErrorKind.ALREADY_MARKED, "Attendance already marked for this session")

    db.refresh(record)
    logger.info(
        f"[Attendance] student_id={student_id} present in session_id={session_id} via {record.method}"
        + (f", {distance:.1f}m from anchor" if distance is not None else "")
    )
    return {"record_id": record.id, "status": PRESENT, "distance_meters": distance}


def check_in(db: Session, session_id: int, student_id: int, coords=None, device_id: str | None = None) -> dict:
    _validate_coords(coords)
    try:
        device_id = _guard_device(db, student_id, device_id)
        session = crud_session.ensure_open(db, session_id)
        device = _note_device_use(db, student_id, device_id, session.id)
        return _record_presence(db, session, student_id, coords, device)
    except AttendanceError as exc:
        logger.warning(f"[Attendance] Rejected student_id={student_id} session_id={session_id}: {exc.kind.value}")
        raise


def check_in_with_token(db: Session, token: str, student_id: int, coords=None, device_id: str | None = None) -> dict:
    _validate_coords(coords)
    try:
        device_id = _guard_device(db, student_id, device_id)
        session = crud_session.get_session_by_token(db, token)
        if not session:
            raise StateConflict(ErrorKind.INVALID_TOKEN, "Invalid QR code")
        crud_session.require_open(db, session)

        if is_expired(session.token_expiry, clock.utcnow()):
            raise StateConflict(ErrorKind.TOKEN_EXPIRED, "QR code has expired. Ask your teacher for a new one.")
        if student_id in session.redeemed_by:
            raise StateConflict(ErrorKind.ALREADY_USED_TOKEN, "You have already used this QR code")

        device = _note_device_use(db, student_id, device_id, session.id)
        return _record_presence(db, session, student_id, coords, device, token=token)
    except AttendanceError as exc:
        logger.warning(f"[Attendance] Rejected QR check-in for student_id={student_id}: {exc.kind.value}")
        raise


def set_attendance_status(
    db: Session,
    session_id: int,
    student_id: int,
    status: str,
    teacher_id: int,
    note: str | None = None,
) -> dict:
    """Teacher override. Skips token and geofence checks, still enforces eligibility."""
    if status not in STATUSES:
        raise InvalidInput(ErrorKind.INVALID_INPUT, f"Status must be one of: {', '.join(STATUSES)}")

    session = crud_session.get_session(db, session_id)
    if not session:
        raise NotFound(ErrorKind.SESSION_NOT_FOUND, "Session not found")
    if session.teacher_id != teacher_id:
        raise NotAuthorized(ErrorKind.NOT_SESSION_OWNER, "Only the teacher who opened this session can do that")
    _check_eligibility(get_student(db, student_id), session)

    for attempt in (1, 2):
        now = clock.utcnow()
        record = get_record(db, session_id, student_id)
        if record:
            action = "updated"
        else:
            action = "created"
            record = AttendanceRecord(session_id=session_id, student_id=student_id, method="manual", marked_at=now)
            db.add(record)

        record.status = status
        record.is_manually_set = True
        record.marked_by_teacher_id = teacher_id
        record.note = note
        record.last_modified = now
        try:
            db.commit()
        except IntegrityError:
            # Student checked in meanwhile; overwrite that record instead.
            db.rollback()
            if attempt == 2:
                raise
            continue

        db.refresh(record)
        logger.info(
            f"[Attendance] teacher_id={teacher_id} set student_id={student_id} {status} "
            f"in session_id={session_id} ({action})"
        )
        return {"record_id": record.id, "action": action, "status": status}


def close_and_reconcile(db: Session, session: AttendanceSession, now=None) -> int:
    """Stage an absent record for every eligible student with no record. Caller commits."""
    now = now or clock.utcnow()
    eligible = get_students_by_cohort(db, session.department, session.year)
    recorded = {
        student_id
        for (student_id,) in db.query(AttendanceRecord.student_id).filter(AttendanceRecord.session_id == session.id)
    }

    missing = [s for s in eligible if s.id not in recorded]
    for student in missing:
        db.add(AttendanceRecord(
            session_id=session.id,
            student_id=student.id,
            status=ABSENT,
            method="sweep",
            marked_at=now,
            is_manually_set=False,
            last_modified=now,
        ))
    return len(missing)


def get_session_attendance(db: Session, session_id: int, teacher_id: int):
    session = crud_session.get_session(db, session_id)
    if not session:
        raise NotFound(ErrorKind.SESSION_NOT_FOUND, "Session not found")
    if session.teacher_id != teacher_id:
        raise NotAuthorized(ErrorKind.NOT_SESSION_OWNER, "Only the teacher who opened this session can do that")

    rows = (
        db.query(AttendanceRecord, User)
        .join(User, AttendanceRecord.student_id == User.id)
        .filter(AttendanceRecord.session_id == session_id)
        .order_by(AttendanceRecord.marked_at.asc())
        .all()
    )
    result = []
    for record, student in rows:
        result.append({
            "record_id": record.id,
            "student_id": student.id,
            "student_name": student.full_name,
            "email": student.email,
            "sap_id": student.sap_id,
            "roll_no": student.roll_no,
            "status": record.status,
            "method": record.method,
            "marked_at": record.marked_at,
            "distance_meters": record.distance_meters,
            "is_manually_set": record.is_manually_set,
            "note": record.note,
        })
    return result


def get_student_history(db: Session, student_id: int):
    rows = (
        db.query(AttendanceRecord, AttendanceSession)
        .join(AttendanceSession, AttendanceRecord.session_id == AttendanceSession.id)
        .filter(AttendanceRecord.student_id == student_id)
        .order_by(AttendanceRecord.marked_at.desc())
        .all()
    )
    return [
        {
            "record_id": record.id,
            "session_id": session.id,
            "title": session.title,
            "status": record.status,
            "method": record.method,
            "marked_at": record.marked_at,
            "distance_meters": record.distance_meters,
        }
        for record, session in rows
    ]
