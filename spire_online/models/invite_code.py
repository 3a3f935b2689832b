import uuid
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, false

from spire_online.database import Base
from spire_online.utils.time_utils import utcnow

class InviteCode(Base):
    __tablename__ = "invite_codes"
    __table_args__ = (
        CheckConstraint("role_to_grant in ('player', 'gm')", name="ck_invite_codes_role_to_grant"),
        CheckConstraint("max_uses > 0", name="ck_invite_codes_max_uses"),
        CheckConstraint("used_count >= 0", name="ck_invite_codes_used_count"),
        CheckConstraint("used_count <= max_uses", name="ck_invite_codes_capacity"),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    campaign_id = Column(String, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    # Unique across all campaigns, stored normalized (trimmed, uppercase)
    code = Column(String, unique=True, index=True, nullable=False)
    role_to_grant = Column(String, nullable=False, default="player")
    created_by_user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    max_uses = Column(Integer, nullable=False, default=1)
    used_count = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    revoked = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    campaign = relationship("Campaign", back_populates="invite_codes")
