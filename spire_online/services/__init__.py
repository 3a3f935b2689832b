from .profile_service import ensure_profile, get_profile, provision_profile, update_my_profile
from .campaign_service import create_campaign, list_my_campaigns, save_campaign_data
from .invite_code_service import issue_invite_code, redeem_invite_code, revoke_invite_code

__all__ = [
    "ensure_profile",
    "get_profile",
    "provision_profile",
    "update_my_profile",
    "create_campaign",
    "list_my_campaigns",
    "save_campaign_data",
    "issue_invite_code",
    "redeem_invite_code",
    "revoke_invite_code",
]
