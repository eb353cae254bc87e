# geoattend/db/models/token_redemption.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from geoattend.db.base import Base
from geoattend.core import clock


class TokenRedemption(Base):
    """One student who consumed the session's current token."""

    __tablename__ = "token_redemptions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False, index=True)
    token = Column(String, nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    redeemed_at = Column(DateTime, default=clock.utcnow, nullable=False)

    session = relationship("AttendanceSession", back_populates="redemptions")

    __table_args__ = (
        UniqueConstraint("session_id", "token", "student_id", name="uq_redemption_once"),
    )
