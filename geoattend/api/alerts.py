from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from geoattend.api.deps import get_db, require_teacher, require_student
from geoattend.crud import alert as crud_alert
from geoattend.db.models.user import User
from geoattend.schemas.alert import SecurityAlertOut

router = APIRouter()


@router.get("/", response_model=List[SecurityAlertOut])
def my_alerts(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_alert.get_security_alerts(db, current_user.id)


# Teachers review a student's audit trail
@router.get("/students/{student_id}", response_model=List[SecurityAlertOut])
def student_alerts(
    student_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_alert.get_security_alerts(db, student_id)


@router.post("/{alert_id}/read", response_model=SecurityAlertOut)
def mark_read(
    alert_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_alert.mark_alert_read(db, alert_id, current_user.id)


@router.post("/{alert_id}/resolve", response_model=SecurityAlertOut)
def resolve(
    alert_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_alert.resolve_alert(db, alert_id, current_user.id)
