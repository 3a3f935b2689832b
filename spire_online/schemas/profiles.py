from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum as PyEnum

class AccountType(str, PyEnum):
    GM = "gm"
    PLAYER = "player"

class ProfileCreate(BaseModel):
    username: Optional[str] = None
    account_type: Optional[str] = None

class ProfileUpdate(BaseModel):
    username: str

class ProfileResponse(BaseModel):
    id: str
    username: str
    account_type: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
