from sqlalchemy import Column, Integer, String, Enum, DateTime
from sqlalchemy.orm import relationship
from geoattend.db.base import Base
from geoattend.core import clock

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum("teacher", "student", name="user_role"), nullable=False)  # only these roles
    full_name = Column(String, nullable=False)
    phone = Column(String, unique=True, nullable=True)

    # Cohort key, students only
    department = Column(String, nullable=True, index=True)
    year = Column(Integer, nullable=True)
    semester = Column(Integer, nullable=True)
    sap_id = Column(String, unique=True, nullable=True)
    roll_no = Column(String, unique=True, nullable=True)

    created_at = Column(DateTime, default=clock.utcnow, nullable=False)

    attendance_records = relationship(
        "AttendanceRecord",
        back_populates="student",
        foreign_keys="AttendanceRecord.student_id",
    )
    devices = relationship("DeviceFingerprint", back_populates="student")
