import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from spire_online.init_db import get_db
from spire_online.common import get_current_user
from spire_online.schemas.invite_codes import (
    InviteCodeCreate,
    InviteCodeIssued,
    InviteCodeRedeem,
    InviteCodeRedeemed,
    InviteCodeResponse,
    InviteCodeRevoke,
)
from spire_online.services.invite_code_service import issue_invite_code, list_invite_codes, redeem_invite_code, revoke_invite_code

# Configure logging
logger = logging.getLogger(__name__)

# Router for invite-code endpoints
router = APIRouter(tags=["invite-codes"])


@router.post("/campaigns/{campaign_id}/invite-codes", response_model=InviteCodeIssued)
async def issue_invite_code_api(
    campaign_id: str,
    request: InviteCodeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Issue an invite code for a campaign.

    Args:
        campaign_id (str): Campaign the code grants membership to
        request (InviteCodeCreate): Role to grant, use cap and lifetime
        db (AsyncSession): Database session
        current_user (dict): Current authenticated user

    Returns:
        InviteCodeIssued: The generated code

    Raises:
        NotAuthorized: If the user is not a GM of the campaign
        InvalidArgument: If the role is not player or gm
    """
    code = await issue_invite_code(
        db,
        current_user,
        campaign_id,
        role_to_grant=request.role_to_grant,
        max_uses=request.max_uses,
        expires_minutes=request.expires_minutes,
    )
    return {"code": code}


@router.get("/campaigns/{campaign_id}/invite-codes", response_model=List[InviteCodeResponse])
async def list_invite_codes_api(
    campaign_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List a campaign's invite codes with their current status."""
    return await list_invite_codes(db, current_user, campaign_id)


@router.post("/campaigns/{campaign_id}/invite-codes/revoke", response_model=InviteCodeResponse)
async def revoke_invite_code_api(
    campaign_id: str,
    request: InviteCodeRevoke,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Revoke one of a campaign's invite codes.

    Returns:
        InviteCodeResponse: The revoked code
    """
    return await revoke_invite_code(db, current_user, campaign_id, request.code)


@router.post("/invite-codes/redeem", response_model=InviteCodeRedeemed)
async def redeem_invite_code_api(
    request: InviteCodeRedeem,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Join a campaign with an invite code.

    Returns:
        InviteCodeRedeemed: The joined campaign id

    Raises:
        NotFound: If the code does not exist
        InviteRevoked, InviteExpired, InviteExhausted: If the code can no longer be used
    """
    campaign_id = await redeem_invite_code(db, current_user, request.code)
    return {"campaign_id": campaign_id}
