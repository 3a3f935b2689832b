"""Pytest setup: every test gets its own SQLite database file and a dev-mode app."""
import os

os.environ["ENVIRONMENT"] = "development"
# The module-level engine is never used by tests, but must not point at PostgreSQL
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from typing import Dict, List

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from spire_online.database import build_engine, build_sessionmaker, create_all
from spire_online.init_db import get_db
from spire_online.main import app
from spire_online.models import CampaignMember, InviteCode


def user(uid: str) -> Dict[str, str]:
    """A decoded identity token as get_current_user returns it."""
    return {"uid": uid, "email": f"{uid}@example.com"}


def bearer(uid: str) -> Dict[str, str]:
    # Development mode treats the bearer token as the user id
    return {"Authorization": f"Bearer {uid}"}


async def fetch_members(session_factory, campaign_id: str) -> List[CampaignMember]:
    async with session_factory() as session:
        result = await session.execute(
            select(CampaignMember).where(CampaignMember.campaign_id == campaign_id)
        )
        return list(result.scalars().all())


async def fetch_invite(session_factory, code: str) -> InviteCode:
    async with session_factory() as session:
        result = await session.execute(select(InviteCode).where(InviteCode.code == code))
        return result.scalar_one()


@pytest.fixture
async def engine(tmp_path):
    async_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'spire.db'}")
    await create_all(async_engine)
    yield async_engine
    await async_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def api(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()
