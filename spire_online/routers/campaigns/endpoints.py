import logging
from typing import List
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from spire_online.init_db import get_db
from spire_online.common import get_current_user
from spire_online.schemas.campaigns import (
    CampaignCreate,
    CampaignDataUpdate,
    CampaignIdResponse,
    CampaignRename,
    CampaignResponse,
    CampaignRoleResponse,
    CampaignSaveResponse,
    MemberResponse,
    MemberRoleUpdate,
    MyCampaignResponse,
)
from spire_online.schemas.rules import RulesConfigResponse
from spire_online.services.campaign_service import (
    create_campaign,
    delete_campaign,
    get_campaign,
    get_campaign_rules,
    get_my_role,
    list_my_campaigns,
    rename_campaign,
    save_campaign_data,
)
from spire_online.services.membership_service import list_members, remove_member, set_member_role

# Configure logging for this module
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.post("", response_model=CampaignIdResponse)
async def create_campaign_api(
    request: CampaignCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Create a campaign. The creator becomes its owner and GM.

    Args:
        request: CampaignCreate with an optional name
        db: Database session
        current_user: Currently authenticated user

    Returns:
        CampaignIdResponse: The new campaign id
    """
    campaign_id = await create_campaign(db, current_user, request.name)
    return {"id": campaign_id}


@router.get("", response_model=List[MyCampaignResponse])
async def list_my_campaigns_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    List the campaigns the current user belongs to, oldest membership first.

    Returns:
        List[MyCampaignResponse]: Role and campaign for each membership
    """
    return await list_my_campaigns(db, current_user)


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign_api(
    campaign_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Read a campaign. Members only."""
    return await get_campaign(db, current_user, campaign_id)


@router.patch("/{campaign_id}", response_model=CampaignResponse)
async def rename_campaign_api(
    campaign_id: str,
    request: CampaignRename,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Rename a campaign. GM only."""
    return await rename_campaign(db, current_user, campaign_id, request.name)


@router.put("/{campaign_id}/data", response_model=CampaignSaveResponse)
async def save_campaign_data_api(
    campaign_id: str,
    request: CampaignDataUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Overwrite the campaign's game-state data. GM only.

    Returns:
        CampaignSaveResponse: Campaign id and its new updated_at
    """
    return await save_campaign_data(db, current_user, campaign_id, request.data)


@router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_campaign_api(
    campaign_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Delete a campaign with its memberships and invite codes. Owner only."""
    await delete_campaign(db, current_user, campaign_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{campaign_id}/role", response_model=CampaignRoleResponse)
async def get_my_role_api(
    campaign_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """The current user's role in a campaign; null when not a member."""
    return {"role": await get_my_role(db, current_user, campaign_id)}


@router.get("/{campaign_id}/rules", response_model=RulesConfigResponse)
async def get_campaign_rules_api(
    campaign_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Rule switches for the campaign's rules profile. Members only."""
    return await get_campaign_rules(db, current_user, campaign_id)


@router.get("/{campaign_id}/members", response_model=List[MemberResponse])
async def list_members_api(
    campaign_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List a campaign's members. Members only."""
    return await list_members(db, current_user, campaign_id)


@router.patch("/{campaign_id}/members/{user_id}", response_model=MemberResponse)
async def set_member_role_api(
    campaign_id: str,
    user_id: str,
    request: MemberRoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Change a member's role. GM only."""
    return await set_member_role(db, current_user, campaign_id, user_id, request.role)


@router.delete("/{campaign_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member_api(
    campaign_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Remove a member (GM), or leave the campaign (any member removing themselves)."""
    await remove_member(db, current_user, campaign_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
