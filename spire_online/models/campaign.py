import uuid
from sqlalchemy import Column, DateTime, ForeignKey, JSON, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from spire_online.database import Base
from spire_online.utils.time_utils import utcnow

DEFAULT_CAMPAIGN_NAME = "New Campaign"

class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    owner_user_id = Column(String, ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False, index=True)
    # Opaque game-state blob owned by the client; JSONB on PostgreSQL
    data = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    owner = relationship("Profile", back_populates="owned_campaigns")
    members = relationship("CampaignMember", back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True)
    invite_codes = relationship("InviteCode", back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True)
