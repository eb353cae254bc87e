# geoattend/db/__init__.py
# Importing the package registers every model on Base.metadata.

from geoattend.db.models import (
    Base,
    User,
    AttendanceSession,
    TokenRedemption,
    AttendanceRecord,
    DeviceFingerprint,
    SecurityAlert,
)

__all__ = [
    "Base",
    "User",
    "AttendanceSession",
    "TokenRedemption",
    "AttendanceRecord",
    "DeviceFingerprint",
    "SecurityAlert",
]
