from pydantic import BaseModel
from datetime import datetime
from typing import Optional

class SessionCreate(BaseModel):
    title: str
    department: str
    year: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    allowed_radius: Optional[float] = None

class SessionOut(BaseModel):
    id: int
    title: str
    department: str
    year: int
    teacher_id: int
    is_open: bool
    created_at: datetime
    closed_at: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    allowed_radius: float

    class Config:
        from_attributes = True

class SessionSummary(BaseModel):
    session_id: int
    title: str
    department: str
    year: int
    allowed_radius: float
    has_anchor: bool

class TokenIssued(BaseModel):
    token: str
    expiry: datetime
    session_id: int

class TokenVerdict(BaseModel):
    valid: bool
    kind: Optional[str] = None
    reason: Optional[str] = None
    expiry: Optional[datetime] = None
    session: Optional[SessionSummary] = None

class CloseResult(BaseModel):
    ok: bool
    absent_marked: int

class SweepResult(BaseModel):
    closed_count: int
