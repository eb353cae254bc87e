from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List

class DeviceFingerprintIn(BaseModel):
    user_agent: str
    screen_resolution: Optional[str] = None
    timezone: Optional[str] = None
    language: Optional[str] = None
    platform: Optional[str] = None

class DeviceRegistration(BaseModel):
    device_id: str
    is_new: bool
    is_trusted: bool

class DeviceRef(BaseModel):
    device_id: str

class DeviceSecurityCheck(BaseModel):
    device_id: str
    session_id: Optional[int] = None

class DeviceSecurityResult(BaseModel):
    is_valid: bool
    is_trusted: bool
    device_name: str
    warnings: List[str] = []

class SimultaneousUsageResult(BaseModel):
    violation: bool
    deactivated_count: int
    message: Optional[str] = None

class OwnershipLockResult(BaseModel):
    locked: bool
    can_proceed: bool
    kind: Optional[str] = None
    device_name: Optional[str] = None
    locked_since: Optional[datetime] = None

class UnlockRequest(BaseModel):
    reason: str

class DeviceOut(BaseModel):
    device_id: str
    device_name: str
    is_trusted: bool
    is_active: bool
    first_seen: datetime
    last_seen: datetime
    last_used_for_attendance: Optional[datetime] = None
    suspicious_activity_count: int

    class Config:
        from_attributes = True
