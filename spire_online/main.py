import logging

from .common import app
from .routers.profiles.endpoints import router as ProfileEndpoints
from .routers.campaigns.endpoints import router as CampaignEndpoints
from .routers.invite_codes.endpoints import router as InviteCodeEndpoints
from .routers.rules.endpoints import router as RulesEndpoints

logger = logging.getLogger(__name__)

# Include routers
app.include_router(ProfileEndpoints)
app.include_router(CampaignEndpoints)
app.include_router(InviteCodeEndpoints)
app.include_router(RulesEndpoints)


@app.get("/health")
async def health():
    return {"status": "ok"}
