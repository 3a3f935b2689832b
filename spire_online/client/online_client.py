"""
Async client for the Spire Online service.

Each method is one remote call. Identity (sign up, sign in, current user) goes
to Firebase Authentication's REST API; everything else goes to the Spire
Online backend with the Firebase ID token as bearer token. Failures are
raised as the exceptions of :mod:`spire_online.errors`; nothing is retried.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from spire_online.errors import (
    Conflict,
    InvalidArgument,
    NotAuthenticated,
    RemoteFailure,
    SpireError,
    error_from_payload,
)

logger = logging.getLogger(__name__)

FIREBASE_AUTH_URL = "https://identitytoolkit.googleapis.com/v1"
DEFAULT_TIMEOUT = 20.0

# Firebase Auth REST error messages, matched on prefix ("WEAK_PASSWORD : ...")
_AUTH_ERRORS = {
    "EMAIL_EXISTS": Conflict,
    "EMAIL_NOT_FOUND": NotAuthenticated,
    "INVALID_PASSWORD": NotAuthenticated,
    "INVALID_LOGIN_CREDENTIALS": NotAuthenticated,
    "USER_DISABLED": NotAuthenticated,
    "INVALID_ID_TOKEN": NotAuthenticated,
    "TOKEN_EXPIRED": NotAuthenticated,
    "USER_NOT_FOUND": NotAuthenticated,
    "INVALID_EMAIL": InvalidArgument,
    "MISSING_EMAIL": InvalidArgument,
    "MISSING_PASSWORD": InvalidArgument,
    "WEAK_PASSWORD": InvalidArgument,
}


@dataclass
class AuthSession:
    user_id: str
    email: Optional[str]
    id_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


def _auth_error(response: httpx.Response) -> SpireError:
    try:
        message = response.json().get("error", {}).get("message", "")
    except ValueError:
        message = ""
    code = message.split(":", 1)[0].strip()
    error_cls = _AUTH_ERRORS.get(code, RemoteFailure)
    return error_cls(message or f"Auth request failed with status {response.status_code}")


class SpireOnlineClient:
    """
    Thin wrapper over the Spire Online HTTP API.

    Call :meth:`init` before anything else; calling it again drops the
    current HTTP handle and session.

    Args:
        transport: Optional httpx transport, shared by backend and auth calls
        timeout: Per-request timeout in seconds
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = DEFAULT_TIMEOUT):
        self._transport = transport
        self._timeout = timeout
        self._http: Optional[httpx.AsyncClient] = None
        self._anon_key: Optional[str] = None
        self._auth_url = FIREBASE_AUTH_URL
        self.session: Optional[AuthSession] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @property
    def ready(self) -> bool:
        return self._http is not None

    async def init(self, url: str, anon_key: str, auth_url: str = FIREBASE_AUTH_URL) -> "SpireOnlineClient":
        """
        Point the client at a backend.

        Args:
            url: Base URL of the Spire Online backend
            anon_key: Firebase Web API key used for the identity calls
            auth_url: Firebase Auth REST base URL (override for the emulator)
        """
        if not url or not anon_key:
            raise InvalidArgument("Missing online config (url/anon_key).")

        await self.close()
        self._http = httpx.AsyncClient(base_url=url.rstrip("/"), transport=self._transport, timeout=self._timeout)
        self._anon_key = anon_key
        self._auth_url = auth_url.rstrip("/")
        logger.info(f"Online client initialized for {url}")
        return self

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
        self._http = None
        self.session = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RemoteFailure("Online client not initialized.")
        return self._http

    # Identity

    async def _auth_call(self, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = self._client()
        try:
            response = await client.post(
                f"{self._auth_url}/accounts:{action}",
                params={"key": self._anon_key},
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.error(f"Auth request {action} failed: {e}")
            raise RemoteFailure(f"Auth request failed: {e}")

        if response.status_code != 200:
            raise _auth_error(response)
        return response.json()

    def _store_session(self, data: Dict[str, Any]) -> AuthSession:
        expires_in = data.get("expiresIn")
        self.session = AuthSession(
            user_id=data["localId"],
            email=data.get("email"),
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken"),
            expires_in=int(expires_in) if expires_in else None,
        )
        return self.session

    async def sign_up(self, email: str, password: str, username: Optional[str] = None, account_type: Optional[str] = None) -> AuthSession:
        """
        Create an account, sign in as it and provision its profile. If the
        profile cannot be provisioned the client is left signed out.
        """
        data = await self._auth_call("signUp", {"email": email, "password": password, "returnSecureToken": True})
        session = self._store_session(data)
        try:
            await self._request("POST", "/profiles", json={"username": username, "account_type": account_type})
        except SpireError:
            self.session = None
            raise
        return session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._auth_call(
            "signInWithPassword", {"email": email, "password": password, "returnSecureToken": True}
        )
        return self._store_session(data)

    async def sign_out(self) -> None:
        self._client()
        self.session = None

    async def current_user(self) -> Optional[Dict[str, Any]]:
        """The signed-in account as the identity provider sees it, or None."""
        self._client()
        if self.session is None:
            return None
        data = await self._auth_call("lookup", {"idToken": self.session.id_token})
        users = data.get("users") or []
        if not users:
            return None
        user = users[0]
        return {
            "id": user.get("localId"),
            "email": user.get("email"),
            "display_name": user.get("displayName"),
            "email_verified": user.get("emailVerified", False),
        }

    # Backend

    async def _request(self, method: str, path: str, json: Optional[Any] = None) -> Any:
        client = self._client()
        if self.session is None:
            raise NotAuthenticated()

        headers = {"Authorization": f"Bearer {self.session.id_token}"}
        try:
            response = await client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise RemoteFailure(f"Request failed: {e}")

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            raise error_from_payload(payload if isinstance(payload, dict) else None, response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get_my_profile(self) -> Dict[str, Any]:
        return await self._request("GET", "/profiles/me")

    async def create_campaign(self, name: Optional[str] = None) -> str:
        data = await self._request("POST", "/campaigns", json={"name": name})
        return data["id"]

    async def generate_invite_code(
        self,
        campaign_id: str,
        role_to_grant: str = "player",
        max_uses: int = 1,
        expires_minutes: int = 1440,
    ) -> str:
        data = await self._request(
            "POST",
            f"/campaigns/{campaign_id}/invite-codes",
            json={"role_to_grant": role_to_grant, "max_uses": max_uses, "expires_minutes": expires_minutes},
        )
        return data["code"]

    async def join_campaign_with_code(self, code: str) -> str:
        data = await self._request("POST", "/invite-codes/redeem", json={"code": code})
        return data["campaign_id"]

    async def revoke_invite_code(self, campaign_id: str, code: str) -> Dict[str, Any]:
        return await self._request("POST", f"/campaigns/{campaign_id}/invite-codes/revoke", json={"code": code})

    async def list_invite_codes(self, campaign_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/campaigns/{campaign_id}/invite-codes")

    async def list_my_campaigns(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/campaigns")

    async def save_campaign_data(self, campaign_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/campaigns/{campaign_id}/data", json={"data": data})

    async def list_members(self, campaign_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/campaigns/{campaign_id}/members")

    async def get_rules_config(self, campaign_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/campaigns/{campaign_id}/rules")
