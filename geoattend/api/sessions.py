from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from geoattend.api.deps import get_db, get_current_user, require_teacher, require_student
from geoattend.crud import session as crud_session
from geoattend.db.models.user import User
from geoattend.schemas.session import (
    SessionCreate, SessionOut, TokenIssued, TokenVerdict, CloseResult, SweepResult,
)

router = APIRouter()


@router.post("/", response_model=SessionOut)
def create_session(
    session_in: SessionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_session.create_session(
        db,
        title=session_in.title,
        department=session_in.department,
        year=session_in.year,
        teacher_id=current_user.id,
        latitude=session_in.latitude,
        longitude=session_in.longitude,
        allowed_radius=session_in.allowed_radius,
    )


# Teacher: own sessions, newest first
@router.get("/mine", response_model=List[SessionOut])
def my_sessions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_session.list_teacher_sessions(db, current_user.id)


# Student: open sessions of their cohort that haven't aged out
@router.get("/open", response_model=List[SessionOut])
def open_sessions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_session.list_open_for_student(db, current_user.id)


@router.post("/expire", response_model=SweepResult)
def expire_sessions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_session.close_expired_sessions(db)


@router.get("/token/{token}", response_model=TokenVerdict)
def validate_token(
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return crud_session.validate_token(db, token)


@router.get("/{session_id}", response_model=SessionOut)
def get_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    # Lazy expiry keeps is_open honest for whoever looks first
    session = crud_session.require_session(db, session_id)
    crud_session.expire_if_stale(db, session)
    return session


@router.post("/{session_id}/close", response_model=CloseResult)
def close_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_session.close_session(db, session_id, current_user.id)


@router.post("/{session_id}/reconcile", response_model=CloseResult)
def reconcile_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_session.reconcile_session(db, session_id, current_user.id)


@router.post("/{session_id}/token", response_model=TokenIssued)
def issue_token(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher)
):
    return crud_session.issue_token(db, session_id, current_user.id)
