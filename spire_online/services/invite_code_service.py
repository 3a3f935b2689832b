import logging
import secrets
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from spire_online.config import settings
from spire_online.core.access import GM, MEMBER, authorize, requester_id
from spire_online.errors import (
    Conflict,
    InvalidArgument,
    InviteExhausted,
    InviteExpired,
    InviteRevoked,
    NotFound,
    SpireError,
)
from spire_online.models import InviteCode
from spire_online.schemas.invite_codes import InviteCodeStatus
from spire_online.services.membership_service import upsert_membership, validate_role
from spire_online.services.profile_service import ensure_profile
from spire_online.utils.time_utils import as_utc, minutes_from_now, utcnow

# Configure logging
logger = logging.getLogger(__name__)


class InviteCodeCollision(Exception):
    """A freshly generated code already exists; generate another one."""


def generate_code(num_bytes: Optional[int] = None) -> str:
    """
    Generate an invite code from a CSPRNG.

    Args:
        num_bytes (int): Bytes of entropy (default from settings, 5 bytes = 40 bits)

    Returns:
        str: Uppercase hex code, two characters per byte (10 by default)
    """
    return secrets.token_bytes(num_bytes or settings.invite_code_length).hex().upper()


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def invite_code_status(invite: InviteCode, now: Optional[datetime] = None) -> InviteCodeStatus:
    """
    Derive the state of a code. Precedence follows redemption: revoked, then
    expired, then exhausted.
    """
    now = now or utcnow()
    if invite.revoked:
        return InviteCodeStatus.REVOKED
    expires_at = as_utc(invite.expires_at)
    if expires_at is not None and now > expires_at:
        return InviteCodeStatus.EXPIRED
    if invite.used_count >= invite.max_uses:
        return InviteCodeStatus.EXHAUSTED
    return InviteCodeStatus.ACTIVE


def serialize_invite_code(invite: InviteCode, now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "id": invite.id,
        "campaign_id": invite.campaign_id,
        "code": invite.code,
        "role_to_grant": invite.role_to_grant,
        "created_by_user_id": invite.created_by_user_id,
        "max_uses": invite.max_uses,
        "used_count": invite.used_count,
        "expires_at": as_utc(invite.expires_at),
        "revoked": invite.revoked,
        "created_at": as_utc(invite.created_at),
        "status": invite_code_status(invite, now),
    }


@retry(
    retry=retry_if_exception_type(InviteCodeCollision),
    stop=stop_after_attempt(settings.invite_code_max_attempts),
    reraise=True,
)
async def _insert_invite_code(
    db: AsyncSession,
    campaign_id: str,
    user_id: str,
    role_to_grant: str,
    max_uses: int,
    expires_at: datetime,
) -> InviteCode:
    code = generate_code()
    invite = InviteCode(
        campaign_id=campaign_id,
        code=code,
        role_to_grant=role_to_grant,
        created_by_user_id=user_id,
        max_uses=max_uses,
        used_count=0,
        expires_at=expires_at,
        revoked=False,
    )
    db.add(invite)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await db.execute(select(InviteCode.id).where(InviteCode.code == code))
        if existing.scalar_one_or_none() is not None:
            logger.warning("Generated invite code collided with an existing one, retrying")
            raise InviteCodeCollision(code)
        raise
    return invite


async def issue_invite_code(
    db: AsyncSession,
    current_user: dict,
    campaign_id: str,
    role_to_grant: Optional[str] = "player",
    max_uses: Optional[int] = 1,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Issue a new invite code for a campaign.

    Args:
        db (AsyncSession): Database session
        current_user (dict): Decoded identity token of the requester
        campaign_id (str): Campaign the code grants membership to
        role_to_grant (str): ``player`` (default) or ``gm``
        max_uses (int): Number of redemptions allowed, raised to at least 1
        expires_minutes (int): Lifetime in minutes, raised to at least 1

    Returns:
        str: The generated code

    Raises:
        NotAuthenticated: If there is no requester
        NotAuthorized: If the requester is not a GM of the campaign
        InvalidArgument: If the role is not player or gm
        Conflict: If no unique code could be generated
    """
    user_id = requester_id(current_user)
    await authorize(db, current_user, campaign_id, GM)
    role_to_grant = validate_role(role_to_grant or "player")

    max_uses = max(max_uses or 1, 1)
    if expires_minutes is None:
        expires_minutes = settings.default_invite_expires_minutes
    expires_minutes = max(expires_minutes, 1)

    try:
        invite = await _insert_invite_code(
            db, campaign_id, user_id, role_to_grant, max_uses, minutes_from_now(expires_minutes)
        )
    except InviteCodeCollision:
        logger.error(f"Could not generate a unique invite code for campaign {campaign_id}")
        raise Conflict("Could not generate a unique invite code")
    except IntegrityError as e:
        logger.error(f"Failed to store invite code for campaign {campaign_id}: {e}")
        raise Conflict("Could not store invite code")

    logger.info(
        f"User {user_id} issued invite code for campaign {campaign_id} "
        f"(role={role_to_grant}, max_uses={max_uses}, expires_minutes={expires_minutes})"
    )
    return invite.code


async def _redemption_failure(db: AsyncSession, code: str, now: datetime) -> SpireError:
    """Work out why a code could not be claimed."""
    result = await db.execute(
        select(InviteCode).where(InviteCode.code == code).execution_options(populate_existing=True)
    )
    invite = result.scalar_one_or_none()
    if invite is None:
        return NotFound("Invalid invite code")

    status = invite_code_status(invite, now)
    if status == InviteCodeStatus.REVOKED:
        return InviteRevoked()
    if status == InviteCodeStatus.EXPIRED:
        return InviteExpired()
    return InviteExhausted()


async def redeem_invite_code(db: AsyncSession, current_user: dict, code: str) -> str:
    """
    Join a campaign with an invite code.

    The capacity check and the use-count increment are one conditional
    UPDATE, so concurrent redemptions can never push ``used_count`` past
    ``max_uses``. The membership upsert runs in the same transaction; an
    existing membership has its role overwritten with the code's role.

    Args:
        db (AsyncSession): Database session
        current_user (dict): Decoded identity token of the requester
        code (str): The invite code, any case, surrounding whitespace ignored

    Returns:
        str: The joined campaign id

    Raises:
        InvalidArgument: If the code is blank
        NotFound: If no such code exists
        InviteRevoked, InviteExpired, InviteExhausted: If the code cannot be used
    """
    user_id = requester_id(current_user)
    normalized = normalize_code(code)
    if not normalized:
        raise InvalidArgument("Invite code required")

    await ensure_profile(db, current_user)

    now = utcnow()
    claim = (
        update(InviteCode)
        .where(
            InviteCode.code == normalized,
            InviteCode.revoked.is_(False),
            InviteCode.used_count < InviteCode.max_uses,
            or_(InviteCode.expires_at.is_(None), InviteCode.expires_at >= now),
        )
        .values(used_count=InviteCode.used_count + 1)
        .returning(InviteCode.campaign_id, InviteCode.role_to_grant)
        .execution_options(synchronize_session=False)
    )

    try:
        result = await db.execute(claim)
        claimed = result.one_or_none()
        if claimed is None:
            await db.rollback()
            error = await _redemption_failure(db, normalized, now)
            logger.warning(f"User {user_id} failed to redeem invite code: {error.kind}")
            raise error

        campaign_id, role_to_grant = claimed
        await upsert_membership(db, campaign_id, user_id, role_to_grant)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    logger.info(f"User {user_id} joined campaign {campaign_id} as {role_to_grant} with an invite code")
    return campaign_id


async def revoke_invite_code(db: AsyncSession, current_user: dict, campaign_id: str, code: str) -> Dict[str, Any]:
    """
    Revoke an invite code of a campaign. GM only; revoking twice is a no-op.

    Returns:
        dict: The updated invite code row with its derived status
    """
    normalized = normalize_code(code)
    if not normalized:
        raise InvalidArgument("Invite code required")
    await authorize(db, current_user, campaign_id, GM)

    result = await db.execute(
        select(InviteCode)
        .where(InviteCode.campaign_id == campaign_id, InviteCode.code == normalized)
        .execution_options(populate_existing=True)
    )
    invite = result.scalar_one_or_none()
    if invite is None:
        raise NotFound("Invite code not found")

    if not invite.revoked:
        invite.revoked = True
        await db.commit()
        await db.refresh(invite)
        logger.info(f"User {requester_id(current_user)} revoked invite code {invite.id} of campaign {campaign_id}")

    return serialize_invite_code(invite)


async def list_invite_codes(db: AsyncSession, current_user: dict, campaign_id: str) -> List[Dict[str, Any]]:
    """Invite codes of a campaign, newest first. Visible to every member."""
    await authorize(db, current_user, campaign_id, MEMBER)
    result = await db.execute(
        select(InviteCode)
        .where(InviteCode.campaign_id == campaign_id)
        .order_by(InviteCode.created_at.desc(), InviteCode.id.asc())
        .execution_options(populate_existing=True)
    )
    now = utcnow()
    return [serialize_invite_code(invite, now) for invite in result.scalars().all()]
