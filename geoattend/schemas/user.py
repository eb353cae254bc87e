from pydantic import BaseModel
from typing import Optional

class UserCreate(BaseModel):
    email: str
    password: str
    full_name: str
    role: str  # "teacher" or "student"
    phone: Optional[str] = None
    # students only
    department: Optional[str] = None
    year: Optional[int] = None
    semester: Optional[int] = None
    sap_id: Optional[str] = None
    roll_no: Optional[str] = None

class UserLogin(BaseModel):
    email: str
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str

class UserOut(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    department: Optional[str] = None
    year: Optional[int] = None

    class Config:
        from_attributes = True
