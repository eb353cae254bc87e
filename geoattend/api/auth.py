from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from geoattend.api.deps import get_db, get_current_user
from geoattend.schemas.user import UserCreate, UserLogin, Token, UserOut
from geoattend.crud import user as crud_user
from geoattend.core.security import verify_password, create_access_token
from geoattend.db.models.user import User

router = APIRouter()


@router.post("/register", response_model=Token)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    if user_in.role not in ["teacher", "student"]:
        raise HTTPException(status_code=400, detail="Role must be 'teacher' or 'student'")
    if user_in.role == "student" and (not user_in.department or user_in.year is None):
        raise HTTPException(status_code=400, detail="Students need a department and a year")

    conflict = crud_user.find_registration_conflict(db, user_in)
    if conflict:
        raise HTTPException(status_code=400, detail=conflict)

    user = crud_user.create_user(db, user_in)
    access_token = create_access_token(user.email)
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/login", response_model=Token)
def login(form: UserLogin, db: Session = Depends(get_db)):
    user = crud_user.get_user_by_email(db, form.email)
    if not user or not verify_password(form.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    access_token = create_access_token(user.email)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
