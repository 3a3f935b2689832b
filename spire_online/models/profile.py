from sqlalchemy import CheckConstraint, Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from spire_online.database import Base
from spire_online.utils.time_utils import utcnow

class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("account_type in ('gm', 'player')", name="ck_profiles_account_type"),
    )

    # Same id as the identity provider's user id (Firebase uid)
    id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    account_type = Column(String, nullable=False, default="player")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    owned_campaigns = relationship("Campaign", back_populates="owner", passive_deletes=True)
    memberships = relationship("CampaignMember", back_populates="user", passive_deletes=True)
