import logging
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from .database import AsyncSessionLocal

logger = logging.getLogger(__name__)

async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a session per request; anything left uncommitted is rolled back."""
    db = AsyncSessionLocal()
    try:
        yield db
    except Exception:
        logger.debug("Rolling back session after request error")
        await db.rollback()
        raise
    finally:
        await db.close()
