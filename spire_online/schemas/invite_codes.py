from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum as PyEnum

class InviteCodeStatus(str, PyEnum):
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    EXPIRED = "expired"
    REVOKED = "revoked"

class InviteCodeCreate(BaseModel):
    # Left as plain values so that bad input surfaces as invalid_argument from the service
    role_to_grant: Optional[str] = "player"
    max_uses: int = 1
    expires_minutes: int = 1440

class InviteCodeIssued(BaseModel):
    code: str

class InviteCodeRedeem(BaseModel):
    code: str

class InviteCodeRevoke(BaseModel):
    code: str

class InviteCodeRedeemed(BaseModel):
    campaign_id: str

class InviteCodeResponse(BaseModel):
    id: str
    campaign_id: str
    code: str
    role_to_grant: str
    created_by_user_id: str
    max_uses: int
    used_count: int
    expires_at: Optional[datetime] = None
    revoked: bool
    created_at: Optional[datetime] = None
    status: InviteCodeStatus
