# geoattend/crud/alert.py
import logging
from sqlalchemy.orm import Session

from geoattend.core import clock
from geoattend.core.errors import ErrorKind, NotAuthorized, NotFound
from geoattend.db.models.security_alert import SecurityAlert

logger = logging.getLogger(__name__)


def create_alert(
    db: Session,
    student_id: int,
    type: str,
    severity: str,
    message: str,
    device_id: str | None = None,
    metadata: dict | None = None,
):
    """Stage an alert on the session. The caller owns the commit."""
    alert = SecurityAlert(
        student_id=student_id,
        type=type,
        severity=severity,
        message=message,
        device_id=device_id,
        details=metadata or {},
        created_at=clock.utcnow(),
    )
    db.add(alert)
    log = logger.error if severity == "critical" else logger.warning
    log(f"[Security] {severity} {type} for student_id={student_id} device={device_id}: {message}")
    return alert


def get_security_alerts(db: Session, student_id: int):
    return (
        db.query(SecurityAlert)
        .filter(SecurityAlert.student_id == student_id)
        .order_by(SecurityAlert.created_at.desc(), SecurityAlert.id.desc())
        .all()
    )


def mark_alert_read(db: Session, alert_id: int, student_id: int):
    alert = db.query(SecurityAlert).filter(SecurityAlert.id == alert_id).first()
    if not alert:
        raise NotFound(ErrorKind.ALERT_NOT_FOUND, "Alert not found")
    if alert.student_id != student_id:
        raise NotAuthorized(ErrorKind.NOT_ALERT_OWNER, "This alert belongs to another student")

    alert.is_read = True
    alert.updated_at = clock.utcnow()
    db.commit()
    db.refresh(alert)
    return alert


def resolve_alert(db: Session, alert_id: int, teacher_id: int):
    alert = db.query(SecurityAlert).filter(SecurityAlert.id == alert_id).first()
    if not alert:
        raise NotFound(ErrorKind.ALERT_NOT_FOUND, "Alert not found")

    alert.is_read = True
    alert.is_resolved = True
    alert.resolved_by_teacher_id = teacher_id
    alert.updated_at = clock.utcnow()
    db.commit()
    db.refresh(alert)
    logger.info(f"[Security] alert_id={alert_id} resolved by teacher_id={teacher_id}")
    return alert
