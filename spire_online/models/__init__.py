from .profile import Profile
from .campaign import Campaign, DEFAULT_CAMPAIGN_NAME
from .campaign_member import CampaignMember
from .invite_code import InviteCode

__all__ = ["Profile", "Campaign", "DEFAULT_CAMPAIGN_NAME", "CampaignMember", "InviteCode"]
