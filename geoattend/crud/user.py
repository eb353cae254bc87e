from sqlalchemy.orm import Session
from geoattend.db.models.user import User
from geoattend.core.security import get_password_hash

def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == email).first()


def get_user_by_id(db: Session, user_id: int):
    return db.query(User).filter(User.id == user_id).first()


def get_student(db: Session, student_id: int):
    return db.query(User).filter(User.id == student_id, User.role == "student").first()


def find_registration_conflict(db: Session, user_data):
    """Return a human message for the first unique field already taken, else None."""
    if get_user_by_email(db, user_data.email):
        return "Email already registered"
    checks = (
        ("sap_id", User.sap_id, "SAP ID already registered"),
        ("roll_no", User.roll_no, "Roll No already registered"),
        ("phone", User.phone, "Phone number already registered"),
    )
    for field, column, message in checks:
        value = getattr(user_data, field, None)
        if value and db.query(User).filter(column == value).first():
            return message
    return None


def create_user(db: Session, user_data):

    db_user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        full_name=user_data.full_name,
        role=user_data.role,
        phone=user_data.phone,
        department=user_data.department,
        year=user_data.year,
        semester=user_data.semester,
        sap_id=user_data.sap_id,
        roll_no=user_data.roll_no,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def get_students_by_cohort(db: Session, department: str, year: int):
    return db.query(User).filter(
        User.role == "student",
        User.department == department,
        User.year == year
    ).all()
