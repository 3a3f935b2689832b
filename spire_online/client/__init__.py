from .online_client import AuthSession, SpireOnlineClient

__all__ = ["AuthSession", "SpireOnlineClient"]
