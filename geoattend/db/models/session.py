# geoattend/db/models/session.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, ForeignKey
from sqlalchemy.orm import relationship
from geoattend.db.base import Base
from geoattend.core import clock


class AttendanceSession(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    department = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # closed_at is set iff is_open is False; closing is terminal
    is_open = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=clock.utcnow, nullable=False)
    closed_at = Column(DateTime, nullable=True)

    # Anchor location. Both set or both empty.
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    allowed_radius = Column(Float, nullable=False, default=100.0)  # meters

    # Single active QR token, overwritten on every issue
    current_token = Column(String, unique=True, nullable=True, index=True)
    token_expiry = Column(DateTime, nullable=True)

    teacher = relationship("User")
    records = relationship("AttendanceRecord", back_populates="session")
    redemptions = relationship(
        "TokenRedemption",
        back_populates="session",
        cascade="all, delete-orphan",
    )

    @property
    def has_anchor(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def redeemed_by(self) -> set:
        return {r.student_id for r in self.redemptions if r.token == self.current_token}
