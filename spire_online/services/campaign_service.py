import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from spire_online.core.access import GM, MEMBER, OWNER, authorize, get_member_role, requester_id
from spire_online.core.rules_engine import get_rules_config
from spire_online.errors import InvalidArgument, NotFound
from spire_online.models import Campaign, CampaignMember, DEFAULT_CAMPAIGN_NAME
from spire_online.services.membership_service import upsert_membership
from spire_online.services.profile_service import ensure_profile
from spire_online.utils.time_utils import utcnow

# Configure logging for this module
logger = logging.getLogger(__name__)


def normalize_campaign_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    return name or DEFAULT_CAMPAIGN_NAME


async def _load_campaign(db: AsyncSession, campaign_id: str) -> Campaign:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFound("Campaign not found")
    return campaign


async def create_campaign(db: AsyncSession, current_user: dict, name: Optional[str] = None) -> str:
    """
    Create a campaign owned by the requester and make them its GM.

    Args:
        db: AsyncSession for database operations
        current_user: Decoded identity token of the requester
        name: Display name; blank or missing becomes "New Campaign"

    Returns:
        str: The new campaign id
    """
    user_id = requester_id(current_user)
    await ensure_profile(db, current_user)

    campaign = Campaign(name=normalize_campaign_name(name), owner_user_id=user_id, data={})
    db.add(campaign)
    await db.flush()

    await upsert_membership(db, campaign.id, user_id, GM)
    await db.commit()

    logger.info(f"User {user_id} created campaign {campaign.id} ({campaign.name})")
    return campaign.id


async def get_campaign(db: AsyncSession, current_user: dict, campaign_id: str) -> Campaign:
    await authorize(db, current_user, campaign_id, MEMBER)
    return await _load_campaign(db, campaign_id)


async def list_my_campaigns(db: AsyncSession, current_user: dict) -> List[Dict[str, Any]]:
    """
    List the requester's campaigns with their role in each, oldest membership first.

    Returns:
        List[dict]: ``{"role": ..., "campaign": Campaign}`` entries
    """
    user_id = requester_id(current_user)
    stmt = (
        select(CampaignMember.role, Campaign)
        .join(Campaign, Campaign.id == CampaignMember.campaign_id)
        .where(CampaignMember.user_id == user_id)
        .order_by(CampaignMember.joined_at.asc(), Campaign.id.asc())
    )
    results = await db.execute(stmt)
    return [{"role": role, "campaign": campaign} for role, campaign in results.all()]


async def save_campaign_data(
    db: AsyncSession, current_user: dict, campaign_id: str, data: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Overwrite the campaign's game-state blob. GM only.

    Returns:
        dict: The campaign id and its refreshed ``updated_at``
    """
    if data is None:
        raise InvalidArgument("Campaign data required")
    await authorize(db, current_user, campaign_id, GM)
    campaign = await _load_campaign(db, campaign_id)

    campaign.data = data
    campaign.updated_at = utcnow()
    await db.commit()
    await db.refresh(campaign)

    logger.info(f"Saved data for campaign {campaign_id}")
    return {"id": campaign.id, "updated_at": campaign.updated_at}


async def rename_campaign(db: AsyncSession, current_user: dict, campaign_id: str, name: str) -> Campaign:
    name = (name or "").strip()
    if not name:
        raise InvalidArgument("Campaign name required")
    await authorize(db, current_user, campaign_id, GM)
    campaign = await _load_campaign(db, campaign_id)

    campaign.name = name
    campaign.updated_at = utcnow()
    await db.commit()
    await db.refresh(campaign)
    return campaign


async def delete_campaign(db: AsyncSession, current_user: dict, campaign_id: str) -> None:
    """Delete a campaign with its memberships and invite codes. Owner only."""
    await authorize(db, current_user, campaign_id, OWNER)
    campaign = await _load_campaign(db, campaign_id)
    await db.delete(campaign)
    await db.commit()
    logger.info(f"User {requester_id(current_user)} deleted campaign {campaign_id}")


async def get_my_role(db: AsyncSession, current_user: dict, campaign_id: str) -> Optional[str]:
    """The requester's role in a campaign, or None when they are not a member."""
    return await get_member_role(db, campaign_id, requester_id(current_user))


async def get_campaign_rules(db: AsyncSession, current_user: dict, campaign_id: str) -> Dict[str, Any]:
    """Rule switches derived from the rules profile stored in the campaign data."""
    campaign = await get_campaign(db, current_user, campaign_id)
    return get_rules_config(campaign.data or {})
