import json

import httpx
import pytest

from spire_online.client import SpireOnlineClient
from spire_online.errors import (
    Conflict,
    InvalidArgument,
    InviteExhausted,
    NotAuthenticated,
    NotAuthorized,
    RemoteFailure,
)
from spire_online.main import app

AUTH_HOST = "identitytoolkit.test"
API_KEY = "test-key"


class FakeFirebaseAuth:
    """
    In-memory stand-in for the Identity Toolkit REST API. ID tokens are the
    user ids, which is what the backend accepts in development mode.
    """

    def __init__(self):
        self.accounts = {}

    def _error(self, message):
        return httpx.Response(400, json={"error": {"code": 400, "message": message}})

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.params.get("key") != API_KEY:
            return self._error("API_KEY_INVALID")

        action = request.url.path.rsplit(":", 1)[-1]
        body = json.loads(request.content or b"{}")

        if action == "signUp":
            if body["email"] in self.accounts:
                return self._error("EMAIL_EXISTS")
            if len(body.get("password") or "") < 6:
                return self._error("WEAK_PASSWORD : Password should be at least 6 characters")
            local_id = f"uid-{len(self.accounts) + 1}"
            self.accounts[body["email"]] = {"localId": local_id, "password": body["password"]}
            return self._session(body["email"])

        if action == "signInWithPassword":
            account = self.accounts.get(body["email"])
            if account is None or account["password"] != body["password"]:
                return self._error("INVALID_LOGIN_CREDENTIALS")
            return self._session(body["email"])

        if action == "lookup":
            for email, account in self.accounts.items():
                if account["localId"] == body["idToken"]:
                    return httpx.Response(200, json={"users": [{"localId": account["localId"], "email": email}]})
            return self._error("INVALID_ID_TOKEN")

        return self._error("OPERATION_NOT_ALLOWED")

    def _session(self, email):
        local_id = self.accounts[email]["localId"]
        return httpx.Response(
            200,
            json={"localId": local_id, "email": email, "idToken": local_id, "refreshToken": "r", "expiresIn": "3600"},
        )


@pytest.fixture
def transport(api):
    fake = FakeFirebaseAuth()
    backend = httpx.ASGITransport(app=app)

    async def route(request: httpx.Request) -> httpx.Response:
        if request.url.host == AUTH_HOST:
            return fake.handle(request)
        return await backend.handle_async_request(request)

    return httpx.MockTransport(route)


@pytest.fixture
async def make_client(transport):
    clients = []

    async def factory():
        client = SpireOnlineClient(transport=transport)
        await client.init(url="http://testserver", anon_key=API_KEY, auth_url=f"http://{AUTH_HOST}/v1")
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.close()


@pytest.fixture
async def gm(make_client):
    client = await make_client()
    await client.sign_up("gm@example.com", "hunter22", username="TheGM", account_type="gm")
    return client


@pytest.fixture
async def player(make_client):
    client = await make_client()
    await client.sign_up("player@example.com", "hunter22")
    return client


async def test_calls_before_init_fail():
    client = SpireOnlineClient()

    with pytest.raises(RemoteFailure, match="not initialized"):
        await client.create_campaign("Too early")
    with pytest.raises(RemoteFailure):
        await client.sign_out()


async def test_init_requires_url_and_key():
    client = SpireOnlineClient()

    with pytest.raises(InvalidArgument):
        await client.init(url="", anon_key=API_KEY)
    with pytest.raises(InvalidArgument):
        await client.init(url="http://testserver", anon_key="")


async def test_backend_calls_need_a_session(make_client):
    client = await make_client()

    assert await client.current_user() is None
    with pytest.raises(NotAuthenticated):
        await client.list_my_campaigns()


async def test_sign_up_provisions_profile(gm):
    profile = await gm.get_my_profile()

    assert profile["id"] == gm.session.user_id
    assert profile["username"] == "TheGM"
    assert profile["account_type"] == "gm"

    me = await gm.current_user()
    assert me["id"] == gm.session.user_id
    assert me["email"] == "gm@example.com"


async def test_sign_in_and_out(gm, make_client):
    other = await make_client()
    session = await other.sign_in("gm@example.com", "hunter22")
    assert session.user_id == gm.session.user_id

    await other.sign_out()
    assert other.session is None
    assert await other.current_user() is None


async def test_identity_errors_are_mapped(gm, make_client):
    client = await make_client()

    with pytest.raises(Conflict):
        await client.sign_up("gm@example.com", "hunter22")
    with pytest.raises(InvalidArgument):
        await client.sign_up("new@example.com", "123")
    with pytest.raises(NotAuthenticated):
        await client.sign_in("gm@example.com", "wrong-password")


async def test_campaign_and_invite_flow(gm, player):
    campaign_id = await gm.create_campaign("The Heist")
    code = await gm.generate_invite_code(campaign_id, max_uses=1)

    assert await player.join_campaign_with_code(code) == campaign_id

    mine = await player.list_my_campaigns()
    assert [(entry["role"], entry["campaign"]["name"]) for entry in mine] == [("player", "The Heist")]

    members = await gm.list_members(campaign_id)
    assert {m["user_id"]: m["role"] for m in members} == {gm.session.user_id: "gm", player.session.user_id: "player"}

    saved = await gm.save_campaign_data(campaign_id, {"rulesProfile": "Custom", "customRules": {"clearStressOnFallout": False}})
    assert saved["id"] == campaign_id

    rules = await player.get_rules_config(campaign_id)
    assert rules == {"difficultyDowngrades": True, "falloutCheckOnStress": True, "clearStressOnFallout": False}

    with pytest.raises(NotAuthorized):
        await player.save_campaign_data(campaign_id, {})
    with pytest.raises(NotAuthorized):
        await player.generate_invite_code(campaign_id)

    codes = await gm.list_invite_codes(campaign_id)
    assert [(c["code"], c["status"]) for c in codes] == [(code, "exhausted")]


async def test_exhausted_and_revoked_codes(gm, player, make_client):
    campaign_id = await gm.create_campaign(None)
    code = await gm.generate_invite_code(campaign_id, max_uses=1)
    await player.join_campaign_with_code(code)

    latecomer = await make_client()
    await latecomer.sign_up("late@example.com", "hunter22")
    with pytest.raises(InviteExhausted):
        await latecomer.join_campaign_with_code(code)

    revoked = await gm.revoke_invite_code(campaign_id, code)
    assert revoked["revoked"] is True
    assert revoked["status"] == "revoked"


async def test_transport_errors_become_remote_failures(gm):
    def broken(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = SpireOnlineClient(transport=httpx.MockTransport(broken))
    await client.init(url="http://testserver", anon_key=API_KEY, auth_url=f"http://{AUTH_HOST}/v1")

    with pytest.raises(RemoteFailure):
        await client.sign_in("gm@example.com", "hunter22")

    client.session = gm.session
    with pytest.raises(RemoteFailure):
        await client.get_my_profile()
    await client.close()


async def test_failed_profile_provisioning_leaves_client_signed_out(gm, make_client):
    client = await make_client()

    with pytest.raises(Conflict):
        await client.sign_up("copycat@example.com", "hunter22", username="TheGM")

    assert client.session is None
    with pytest.raises(NotAuthenticated):
        await client.get_my_profile()
