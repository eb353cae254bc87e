# geoattend/crud/device.py
"""Device ownership registry.

One device id belongs to the first student who registered it, forever.
Every rejection here writes security alerts before raising.
"""
import logging
from datetime import timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geoattend.core import clock
from geoattend.core.config import settings
from geoattend.core.errors import (
    ErrorKind,
    NotAuthorized,
    NotFound,
    SecurityViolation,
    StateConflict,
)
from geoattend.core.fingerprint import compute_device_id, device_name, fingerprint_components
from geoattend.crud.alert import create_alert
from geoattend.crud.user import get_student
from geoattend.db.models.device import DeviceFingerprint

logger = logging.getLogger(__name__)


def get_device(db: Session, device_id: str):
    return db.query(DeviceFingerprint).filter(DeviceFingerprint.device_id == device_id).first()


def list_student_devices(db: Session, student_id: int):
    return (
        db.query(DeviceFingerprint)
        .filter(DeviceFingerprint.student_id == student_id)
        .order_by(DeviceFingerprint.last_seen.desc())
        .all()
    )


def _record_ownership_violation(db: Session, device: DeviceFingerprint, violator_id: int, now, action: str):
    """Alert both parties and bump the owner's suspicious-activity counter. Caller commits."""
    create_alert(
        db,
        student_id=violator_id,
        type="account_sharing_attempt",
        severity="critical",
        message=(
            f"Attempted {action} from a device that is permanently locked to another student. "
            "Devices are bound to their first user; logging out does not release them."
        ),
        device_id=device.device_id,
        metadata={
            "violating_student": violator_id,
            "device_owner": device.student_id,
            "device_name": device.device_name,
        },
    )
    create_alert(
        db,
        student_id=device.student_id,
        type="unauthorized_device_access",
        severity="critical",
        message=f"Another student attempted {action} from your device: {device.device_name}",
        device_id=device.device_id,
        metadata={
            "violating_student": violator_id,
            "device_owner": device.student_id,
            "device_name": device.device_name,
        },
    )
    device.suspicious_activity_count = (device.suspicious_activity_count or 0) + 1
    device.last_seen = now


def _ownership_error(device: DeviceFingerprint) -> SecurityViolation:
    return SecurityViolation(
        ErrorKind.DEVICE_OWNERSHIP_VIOLATION,
        "This device is permanently registered to another student. "
        "The violation has been logged and reported to both accounts.",
        extra={
            "device_id": device.device_id,
            "device_name": device.device_name,
            "locked_since": device.first_seen.isoformat(),
        },
    )


def register_device(db: Session, student_id: int, fingerprint, _retry: bool = True) -> dict:
    student = get_student(db, student_id)
    if not student:
        raise NotFound(ErrorKind.STUDENT_NOT_FOUND, "Student not found")

    device_id = compute_device_id(fingerprint)
    now = clock.utcnow()
    existing = get_device(db, device_id)

    if existing and existing.student_id != student_id:
        _record_ownership_violation(db, existing, student_id, now, action="registration")
        db.commit()
        logger.error(
            f"[Devices] Ownership violation: student_id={student_id} presented {device_id} "
            f"owned by student_id={existing.student_id}"
        )
        raise _ownership_error(existing)

    if existing:
        existing.last_seen = now
        existing.is_active = True
        db.commit()
        return {"device_id": device_id, "is_new": False, "is_trusted": existing.is_trusted}

    previous = (
        db.query(DeviceFingerprint)
        .filter(DeviceFingerprint.student_id == student_id)
        .order_by(DeviceFingerprint.first_seen.asc())
        .all()
    )
    # First device ever is trusted automatically
    is_trusted = not previous
    name = device_name(fingerprint)
    user_agent, screen_resolution, timezone, language, platform = fingerprint_components(fingerprint)

    device = DeviceFingerprint(
        device_id=device_id,
        student_id=student_id,
        device_name=name,
        user_agent=user_agent,
        screen_resolution=screen_resolution or None,
        timezone=timezone or None,
        language=language or None,
        platform=platform or None,
        is_trusted=is_trusted,
        is_active=True,
        first_seen=now,
        last_seen=now,
        suspicious_activity_count=0,
    )
    db.add(device)

    if previous:
        create_alert(
            db,
            student_id=student_id,
            type="new_device",
            severity="medium",
            message=f"New device detected: {name}. If this wasn't you, contact your teacher immediately.",
            device_id=device_id,
            metadata={"new_device": name, "old_device": previous[0].device_name, "device_name": name},
        )

    try:
        db.commit()
    except IntegrityError:
        # Same device registered concurrently; the second pass sees the stored owner.
        db.rollback()
        if not _retry:
            raise
        logger.info(f"[Devices] Concurrent registration of {device_id}, re-checking owner")
        return register_device(db, student_id, fingerprint, _retry=False)

    logger.info(f"[Devices] Registered {device_id} ({name}) for student_id={student_id}, trusted={is_trusted}")
    return {"device_id": device_id, "is_new": True, "is_trusted": is_trusted}


def check_ownership(db: Session, student_id: int, device_id: str) -> dict:
    """Guard for security-sensitive operations. Read-only when the device checks out."""
    device = get_device(db, device_id)
    if not device:
        raise NotFound(ErrorKind.DEVICE_NOT_FOUND, "Device not found. Refresh the page and try again.")

    if device.student_id != student_id:
        _record_ownership_violation(db, device, student_id, clock.utcnow(), action="access")
        db.commit()
        logger.error(f"[Devices] student_id={student_id} used {device_id} owned by student_id={device.student_id}")
        raise NotAuthorized(
            ErrorKind.UNAUTHORIZED_DEVICE,
            "This device is registered to another student account. Use your own device.",
            extra={"device_id": device_id},
        )

    if not device.is_active:
        create_alert(
            db,
            student_id=student_id,
            type="unauthorized_device_access",
            severity="high",
            message=f"A deactivated device was used: {device.device_name}. Register it again if this was you.",
            device_id=device_id,
            metadata={"device_name": device.device_name, "device_owner": device.student_id},
        )
        device.suspicious_activity_count = (device.suspicious_activity_count or 0) + 1
        db.commit()
        logger.warning(f"[Devices] student_id={student_id} used deactivated {device_id}")
        raise StateConflict(
            ErrorKind.DEVICE_INACTIVE,
            "This device has been deactivated. Register it again to continue.",
            extra={"device_id": device_id},
        )

    return {"valid": True, "device": device}


def check_device_security(db: Session, student_id: int, device_id: str, session_id: int | None = None) -> dict:
    result = check_ownership(db, student_id, device_id)
    device = result["device"]
    now = clock.utcnow()

    device.last_seen = now
    device.last_used_for_attendance = now

    warnings = []
    if not device.is_trusted:
        warnings.append("This device is not trusted. Contact your teacher if you believe this is an error.")

    cutoff = now - timedelta(seconds=settings.RECENT_DEVICE_WINDOW_SECONDS)
    recent = (
        db.query(DeviceFingerprint)
        .filter(
            DeviceFingerprint.student_id == student_id,
            DeviceFingerprint.device_id != device_id,
            DeviceFingerprint.last_seen > cutoff,
        )
        .all()
    )
    if recent and session_id is not None:
        create_alert(
            db,
            student_id=student_id,
            type="multiple_devices_attendance",
            severity="high",
            message=f"Multiple devices used within 24 hours for attendance. Current: {device.device_name}",
            device_id=device_id,
            metadata={
                "session_id": session_id,
                "old_device": recent[0].device_name,
                "new_device": device.device_name,
            },
        )
        warnings.append("Multiple devices detected in 24 hours. This may trigger a security review.")

    db.commit()
    return {
        "is_valid": True,
        "is_trusted": device.is_trusted,
        "device_name": device.device_name,
        "warnings": warnings,
    }


def detect_simultaneous_usage(db: Session, student_id: int, current_device_id: str) -> dict:
    check_ownership(db, student_id, current_device_id)
    now = clock.utcnow()
    cutoff = now - timedelta(seconds=settings.SIMULTANEOUS_USAGE_WINDOW_SECONDS)

    others = (
        db.query(DeviceFingerprint)
        .filter(
            DeviceFingerprint.student_id == student_id,
            DeviceFingerprint.device_id != current_device_id,
            DeviceFingerprint.is_active.is_(True),
            DeviceFingerprint.last_seen > cutoff,
        )
        .all()
    )
    if not others:
        return {"violation": False, "deactivated_count": 0}

    create_alert(
        db,
        student_id=student_id,
        type="multiple_devices_attendance",
        severity="critical",
        message="Multiple devices detected simultaneously. Other devices have been deactivated.",
        device_id=current_device_id,
        metadata={
            "violating_student": student_id,
            "device_name": others[0].device_name,
            "deactivated_devices": [d.device_id for d in others],
        },
    )
    for device in others:
        device.is_active = False
        device.suspicious_activity_count = (device.suspicious_activity_count or 0) + 1
    db.commit()

    return {
        "violation": True,
        "deactivated_count": len(others),
        "message": "Multiple device usage detected. Other devices have been deactivated for security.",
    }


def trust_device(db: Session, student_id: int, device_id: str):
    device = get_device(db, device_id)
    if not device:
        raise NotFound(ErrorKind.DEVICE_NOT_FOUND, "Device not found")
    if device.student_id != student_id:
        _record_ownership_violation(db, device, student_id, clock.utcnow(), action="a trust change")
        db.commit()
        raise NotAuthorized(ErrorKind.UNAUTHORIZED_DEVICE, "Device access denied")

    device.is_trusted = True
    db.commit()
    db.refresh(device)
    return device


def force_logout_all_devices(db: Session, student_id: int) -> dict:
    devices = db.query(DeviceFingerprint).filter(DeviceFingerprint.student_id == student_id).all()
    for device in devices:
        device.is_active = False
        device.is_trusted = False

    create_alert(
        db,
        student_id=student_id,
        type="account_sharing_attempt",
        severity="critical",
        message=(
            "Emergency logout: all devices have been deactivated due to suspected account sharing. "
            "Contact your teacher to reactivate your devices."
        ),
        metadata={"deactivated_devices": [d.device_id for d in devices]},
    )
    db.commit()
    return {"success": True, "deactivated_count": len(devices)}


def check_device_ownership_lock(db: Session, device_id: str, student_id: int) -> dict:
    """Pre-login probe: can this student use this device at all?"""
    device = get_device(db, device_id)
    if not device:
        return {"locked": False, "can_proceed": True}

    if device.student_id != student_id:
        _record_ownership_violation(db, device, student_id, clock.utcnow(), action="login")
        db.commit()
        return {
            "locked": True,
            "can_proceed": False,
            "kind": ErrorKind.DEVICE_OWNERSHIP_VIOLATION.value,
            "device_name": device.device_name,
            "locked_since": device.first_seen,
        }

    return {"locked": False, "can_proceed": True}


def request_device_unlock(db: Session, student_id: int, device_id: str, reason: str) -> dict:
    device = get_device(db, device_id)
    if not device:
        raise NotFound(ErrorKind.DEVICE_NOT_FOUND, "Device not found")

    create_alert(
        db,
        student_id=student_id,
        type="device_ownership_violation",
        severity="medium",
        message=f"Device unlock requested. Reason: {reason}. Requires teacher approval.",
        device_id=device_id,
        metadata={
            "violating_student": student_id,
            "device_owner": device.student_id,
            "device_name": device.device_name,
        },
    )
    db.commit()
    return {"success": True, "message": "Unlock request submitted. Contact your teacher for approval."}
