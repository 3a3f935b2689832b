"""
Campaign access predicates.

Every campaign, membership and invite-code path calls :func:`authorize` before
touching rows, so the rules live in one place:

- ``member``: any membership row in the campaign (read access)
- ``gm``: a membership with the ``gm`` role (campaign, member and invite writes)
- ``owner``: the campaign's creator (deletion)
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from spire_online.errors import NotAuthenticated, NotAuthorized, NotFound
from spire_online.models import Campaign, CampaignMember

logger = logging.getLogger(__name__)

MEMBER = "member"
GM = "gm"
OWNER = "owner"

REQUIRED_ROLES = (MEMBER, GM, OWNER)


def requester_id(current_user: Optional[dict]) -> str:
    if not current_user or not current_user.get("uid"):
        raise NotAuthenticated()
    return current_user["uid"]


async def get_member_role(db: AsyncSession, campaign_id: str, user_id: str) -> Optional[str]:
    result = await db.execute(
        select(CampaignMember.role).where(
            CampaignMember.campaign_id == campaign_id,
            CampaignMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def authorize(
    db: AsyncSession,
    current_user: Optional[dict],
    campaign_id: str,
    required_role: str = MEMBER,
) -> Optional[str]:
    """
    Check that the requester may act on ``campaign_id`` with ``required_role``.

    Returns the requester's membership role (``None`` only for an owner who
    is no longer a member). Raises NotAuthenticated, NotFound when the
    campaign does not exist, or NotAuthorized.
    """
    if required_role not in REQUIRED_ROLES:
        raise ValueError(f"Unknown required role: {required_role}")

    user_id = requester_id(current_user)

    result = await db.execute(select(Campaign.owner_user_id).where(Campaign.id == campaign_id))
    owner_user_id = result.scalar_one_or_none()
    if owner_user_id is None:
        raise NotFound("Campaign not found")

    role = await get_member_role(db, campaign_id, user_id)

    if required_role == OWNER:
        allowed = owner_user_id == user_id
    elif required_role == GM:
        allowed = role == GM
    else:
        allowed = role is not None

    if not allowed:
        logger.warning(f"Denied {required_role} access to campaign {campaign_id} for user {user_id} (role={role})")
        if required_role == OWNER:
            raise NotAuthorized("Only the campaign owner can do this")
        if required_role == GM:
            raise NotAuthorized("Only a GM can do this")
        raise NotAuthorized("Not a member of this campaign")

    return role
