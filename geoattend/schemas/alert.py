from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

class SecurityAlertOut(BaseModel):
    id: int
    student_id: int
    type: str
    severity: str
    message: str
    device_id: Optional[str] = None
    metadata: dict = Field(default_factory=dict, validation_alias="details")
    is_read: bool
    is_resolved: bool
    created_at: datetime

    class Config:
        from_attributes = True
