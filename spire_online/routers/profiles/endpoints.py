import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from spire_online.init_db import get_db
from spire_online.common import get_current_user
from spire_online.schemas.profiles import ProfileCreate, ProfileResponse, ProfileUpdate
from spire_online.services.profile_service import get_profile, provision_profile, update_my_profile

# Configure logging for this module
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.post("", response_model=ProfileResponse)
async def provision_profile_api(
    request: ProfileCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Provision the profile of the signed-in user. Called once after sign-up;
    calling it again returns the existing profile.

    Args:
        request: Requested username and account type
        db: Database session
        current_user: Currently authenticated user

    Returns:
        ProfileResponse: The user's profile
    """
    return await provision_profile(db, current_user, request.username, request.account_type)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get the signed-in user's profile."""
    return await get_profile(db, current_user, current_user["uid"])


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile_api(
    request: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Change the signed-in user's username."""
    return await update_my_profile(db, current_user, request.username)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile_api(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get any user's public profile."""
    return await get_profile(db, current_user, user_id)
