import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from spire_online.core.access import requester_id
from spire_online.errors import Conflict, InvalidArgument, NotFound
from spire_online.models import Profile
from spire_online.schemas.profiles import AccountType

# Configure logging for this module
logger = logging.getLogger(__name__)

ACCOUNT_TYPES = {account_type.value for account_type in AccountType}


def fallback_username(user_id: str) -> str:
    return f"user_{user_id[:8]}"


def derive_username(user_id: str, email: Optional[str] = None, requested: Optional[str] = None) -> str:
    """
    Pick a username for a new profile: the requested one, else the local part
    of the email address, else ``user_`` plus the first 8 characters of the id.
    """
    for candidate in (requested, (email or "").split("@", 1)[0]):
        if candidate and candidate.strip():
            return candidate.strip()
    return fallback_username(user_id)


async def get_profile_by_id(db: AsyncSession, user_id: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def username_taken(db: AsyncSession, username: str) -> bool:
    result = await db.execute(select(Profile.id).where(Profile.username == username))
    return result.scalar_one_or_none() is not None


async def provision_profile(
    db: AsyncSession,
    current_user: dict,
    username: Optional[str] = None,
    account_type: Optional[str] = None,
) -> Profile:
    """
    Create the profile row for a freshly signed-up user.

    Provisioning is idempotent: an existing profile is returned untouched.

    Args:
        db: AsyncSession for database operations
        current_user: Decoded identity token of the requester
        username: Requested username; derived from the email when blank
        account_type: ``gm`` or ``player`` (default ``player``)

    Returns:
        Profile: The new or already existing profile

    Raises:
        InvalidArgument: If the account type is unknown
        Conflict: If the requested username belongs to someone else
    """
    user_id = requester_id(current_user)

    existing = await get_profile_by_id(db, user_id)
    if existing:
        return existing

    account_type = account_type or AccountType.PLAYER.value
    if account_type not in ACCOUNT_TYPES:
        raise InvalidArgument("Invalid account type")

    explicit = bool(username and username.strip())
    candidate = derive_username(user_id, current_user.get("email"), username)

    if await username_taken(db, candidate):
        if explicit or candidate == fallback_username(user_id):
            logger.warning(f"Username {candidate} already taken, rejecting profile for {user_id}")
            raise Conflict("Username already taken")
        candidate = fallback_username(user_id)
        if await username_taken(db, candidate):
            raise Conflict("Username already taken")

    profile = Profile(id=user_id, username=candidate, account_type=account_type)
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        # Lost a race: either the same user provisioned concurrently or the name went
        existing = await get_profile_by_id(db, user_id)
        if existing:
            return existing
        raise Conflict("Username already taken")
    await db.refresh(profile)

    logger.info(f"Provisioned profile {user_id} as {candidate} ({account_type})")
    return profile


async def ensure_profile(db: AsyncSession, current_user: dict) -> Profile:
    """Return the requester's profile, provisioning it with derived defaults if missing."""
    profile = await get_profile_by_id(db, requester_id(current_user))
    if profile:
        return profile
    return await provision_profile(db, current_user)


async def get_profile(db: AsyncSession, current_user: dict, user_id: str) -> Profile:
    # Profiles are public to any signed-in user
    requester_id(current_user)
    profile = await get_profile_by_id(db, user_id)
    if profile is None:
        raise NotFound("Profile not found")
    return profile


async def update_my_profile(db: AsyncSession, current_user: dict, username: str) -> Profile:
    """
    Rename the requester's own profile.

    Raises:
        InvalidArgument: If the username is blank
        NotFound: If the requester has no profile yet
        Conflict: If another profile already uses the username
    """
    user_id = requester_id(current_user)
    username = (username or "").strip()
    if not username:
        raise InvalidArgument("Username required")

    profile = await get_profile_by_id(db, user_id)
    if profile is None:
        raise NotFound("Profile not found")
    if profile.username == username:
        return profile
    if await username_taken(db, username):
        raise Conflict("Username already taken")

    profile.username = username
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Username already taken")
    await db.refresh(profile)
    return profile
