from geoattend.db.base import Base
from geoattend.db.models.user import User
from geoattend.db.models.session import AttendanceSession
from geoattend.db.models.token_redemption import TokenRedemption
from geoattend.db.models.attendance import AttendanceRecord
from geoattend.db.models.device import DeviceFingerprint
from geoattend.db.models.security_alert import SecurityAlert

__all__ = [
    "Base",
    "User",
    "AttendanceSession",
    "TokenRedemption",
    "AttendanceRecord",
    "DeviceFingerprint",
    "SecurityAlert",
]
