from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Literal

class Coordinates(BaseModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None  # meters, as reported by the browser

class CheckInRequest(BaseModel):
    session_id: int
    coords: Optional[Coordinates] = None
    device_id: Optional[str] = None

class QrCheckInRequest(BaseModel):
    token: str
    coords: Optional[Coordinates] = None
    device_id: Optional[str] = None

class CheckInResult(BaseModel):
    record_id: int
    status: str
    distance_meters: Optional[float] = None

class StatusUpdate(BaseModel):
    status: Literal["present", "absent"]
    note: Optional[str] = None

class StatusResult(BaseModel):
    record_id: int
    action: str
    status: str

class SessionAttendanceRow(BaseModel):
    record_id: int
    student_id: int
    student_name: str
    email: str
    sap_id: Optional[str] = None
    roll_no: Optional[str] = None
    status: str
    method: str
    marked_at: datetime
    distance_meters: Optional[float] = None
    is_manually_set: bool
    note: Optional[str] = None

class HistoryRow(BaseModel):
    record_id: int
    session_id: int
    title: str
    status: str
    method: str
    marked_at: datetime
    distance_meters: Optional[float] = None
