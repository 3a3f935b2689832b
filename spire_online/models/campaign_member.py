from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from spire_online.database import Base
from spire_online.utils.time_utils import utcnow

class CampaignMember(Base):
    __tablename__ = "campaign_members"
    __table_args__ = (
        CheckConstraint("role in ('gm', 'player')", name="ck_campaign_members_role"),
    )

    campaign_id = Column(String, ForeignKey("campaigns.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True, index=True)
    role = Column(String, nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    campaign = relationship("Campaign", back_populates="members")
    user = relationship("Profile", back_populates="memberships")
