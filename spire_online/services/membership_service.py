import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from spire_online.core.access import GM, MEMBER, authorize, requester_id
from spire_online.errors import InvalidArgument, NotFound
from spire_online.models import Campaign, CampaignMember
from spire_online.schemas.campaigns import CampaignRole

# Configure logging for this module
logger = logging.getLogger(__name__)

CAMPAIGN_ROLES = {role.value for role in CampaignRole}

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def validate_role(role: str) -> str:
    if role not in CAMPAIGN_ROLES:
        raise InvalidArgument("Invalid role")
    return role


async def upsert_membership(db: AsyncSession, campaign_id: str, user_id: str, role: str) -> None:
    """
    Insert a membership, or overwrite the role of the existing one, in a
    single statement keyed on (campaign_id, user_id). Does not commit.
    """
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Membership upsert is not supported on {dialect}")

    stmt = insert(CampaignMember).values(campaign_id=campaign_id, user_id=user_id, role=role)
    stmt = stmt.on_conflict_do_update(
        index_elements=[CampaignMember.campaign_id, CampaignMember.user_id],
        set_={"role": stmt.excluded.role},
    )
    await db.execute(stmt)


async def list_members(db: AsyncSession, current_user: dict, campaign_id: str) -> List[CampaignMember]:
    """
    List the members of a campaign in join order. Only co-members may look.
    """
    await authorize(db, current_user, campaign_id, MEMBER)
    result = await db.execute(
        select(CampaignMember)
        .where(CampaignMember.campaign_id == campaign_id)
        .order_by(CampaignMember.joined_at.asc(), CampaignMember.user_id.asc())
    )
    return list(result.scalars().all())


async def _get_member(db: AsyncSession, campaign_id: str, user_id: str) -> CampaignMember:
    result = await db.execute(
        select(CampaignMember).where(
            CampaignMember.campaign_id == campaign_id,
            CampaignMember.user_id == user_id,
        )
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise NotFound("Member not found")
    return member


async def set_member_role(
    db: AsyncSession, current_user: dict, campaign_id: str, member_id: str, role: str
) -> CampaignMember:
    """
    Change a member's role. GM only.

    Raises:
        InvalidArgument: If the role is not gm or player
        NotAuthorized: If the requester is not a GM of the campaign
        NotFound: If the user is not a member
    """
    validate_role(role)
    await authorize(db, current_user, campaign_id, GM)
    member = await _get_member(db, campaign_id, member_id)

    if member.role != role:
        member.role = role
        await db.commit()
        await db.refresh(member)
        logger.info(f"User {requester_id(current_user)} set role of {member_id} in {campaign_id} to {role}")
    return member


async def remove_member(db: AsyncSession, current_user: dict, campaign_id: str, member_id: str) -> None:
    """
    Remove a member from a campaign. GMs may remove anyone but the owner; any
    member may remove themselves.
    """
    user_id = requester_id(current_user)
    if member_id == user_id:
        await authorize(db, current_user, campaign_id, MEMBER)
    else:
        await authorize(db, current_user, campaign_id, GM)

    campaign = await db.get(Campaign, campaign_id)
    if campaign is not None and campaign.owner_user_id == member_id:
        raise InvalidArgument("The campaign owner cannot be removed")

    member = await _get_member(db, campaign_id, member_id)
    await db.delete(member)
    await db.commit()
    logger.info(f"User {user_id} removed {member_id} from campaign {campaign_id}")

