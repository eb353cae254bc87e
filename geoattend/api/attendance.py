from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from geoattend.api.deps import get_db, require_teacher, require_student
from geoattend.crud import attendance as crud_attendance
from geoattend.db.models.user import User
from geoattend.schemas.attendance import (
    CheckInRequest, QrCheckInRequest, CheckInResult,
    StatusUpdate, StatusResult, SessionAttendanceRow, HistoryRow,
)

router = APIRouter()


# Direct check-in: session id + browser location
@router.post("/check-in", response_model=CheckInResult)
def check_in(
    body: CheckInRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_attendance.check_in(
        db,
        session_id=body.session_id,
        student_id=current_user.id,
        coords=body.coords,
        device_id=body.device_id,
    )


# QR check-in: scanned token + browser location
@router.post("/check-in/qr", response_model=CheckInResult)
def check_in_with_token(
    body: QrCheckInRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_attendance.check_in_with_token(
        db,
        token=body.token,
        student_id=current_user.id,
        coords=body.coords,
        device_id=body.device_id,
    )


@router.get("/history", response_model=List[HistoryRow])
def my_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_attendance.get_student_history(db, current_user.id)


@router.get("/session/{session_id}", response_model=List[SessionAttendanceRow])
def session_attendance(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_attendance.get_session_attendance(db, session_id, current_user.id)


# Teacher override: present/absent with an optional note
@router.put("/session/{session_id}/students/{student_id}", response_model=StatusResult)
def set_status(
    session_id: int,
    student_id: int,
    body: StatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_attendance.set_attendance_status(
        db,
        session_id=session_id,
        student_id=student_id,
        status=body.status,
        teacher_id=current_user.id,
        note=body.note,
    )
