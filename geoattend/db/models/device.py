# geoattend/db/models/device.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from geoattend.db.base import Base
from geoattend.core import clock


class DeviceFingerprint(Base):
    __tablename__ = "device_fingerprints"

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(String, unique=True, index=True, nullable=False)
    # Written once. A device never changes owner.
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    device_name = Column(String, nullable=False)

    user_agent = Column(String, nullable=False)
    screen_resolution = Column(String, nullable=True)
    timezone = Column(String, nullable=True)
    language = Column(String, nullable=True)
    platform = Column(String, nullable=True)

    is_trusted = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    first_seen = Column(DateTime, default=clock.utcnow, nullable=False)
    last_seen = Column(DateTime, default=clock.utcnow, nullable=False)
    last_used_for_attendance = Column(DateTime, nullable=True)
    suspicious_activity_count = Column(Integer, default=0, nullable=False)

    student = relationship("User", back_populates="devices")
