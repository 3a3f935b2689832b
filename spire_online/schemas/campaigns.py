from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime
from enum import Enum as PyEnum

class CampaignRole(str, PyEnum):
    GM = "gm"
    PLAYER = "player"

class CampaignCreate(BaseModel):
    name: Optional[str] = None

class CampaignRename(BaseModel):
    name: str

class CampaignDataUpdate(BaseModel):
    data: Dict[str, Any]

class CampaignIdResponse(BaseModel):
    id: str

class CampaignResponse(BaseModel):
    id: str
    name: str
    owner_user_id: str
    data: Dict[str, Any]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CampaignSaveResponse(BaseModel):
    id: str
    updated_at: Optional[datetime] = None

class MyCampaignResponse(BaseModel):
    role: CampaignRole
    campaign: CampaignResponse

class CampaignRoleResponse(BaseModel):
    role: Optional[CampaignRole] = None

class MemberResponse(BaseModel):
    campaign_id: str
    user_id: str
    role: CampaignRole
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class MemberRoleUpdate(BaseModel):
    role: str
