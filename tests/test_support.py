import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from spire_online import config
from spire_online.errors import (
    Conflict,
    InviteExhausted,
    InviteRevoked,
    NotAuthenticated,
    RemoteFailure,
    error_from_payload,
)
from spire_online.secrets_manager import SecretsManager, get_secrets_manager
from spire_online.utils.time_utils import as_utc, minutes_from_now


def test_error_payload_round_trip():
    error = error_from_payload(InviteExhausted().to_dict(), 409)

    assert isinstance(error, InviteExhausted)
    assert error.detail == "Invite code has no remaining uses"
    assert error.status_code == 409


def test_error_payload_fallbacks():
    assert isinstance(error_from_payload({"error": "conflict", "detail": "taken"}, 409), Conflict)
    assert isinstance(error_from_payload({"error": "mystery"}, 500), RemoteFailure)
    assert isinstance(error_from_payload(None, 503), RemoteFailure)
    assert error_from_payload({"detail": [{"msg": "bad"}]}, 418).detail == "Request failed with status 418"
    assert NotAuthenticated().to_dict() == {"error": "not_authenticated", "detail": "Not authenticated"}
    assert InviteRevoked.status_code == 410


def test_as_utc():
    naive = datetime(2025, 1, 1, 12, 0)
    assert as_utc(naive) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc(None) is None

    plus_two = datetime(2025, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert as_utc(plus_two).hour == 12


def test_minutes_from_now():
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert minutes_from_now(90, now=start) == datetime(2025, 1, 1, 1, 30, tzinfo=timezone.utc)


def _client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "GetSecretValue")


def _secrets_manager(get_secret_value):
    manager = SecretsManager(region_name="eu-west-1")
    manager._client = MagicMock()
    manager._client.get_secret_value.side_effect = get_secret_value
    return manager


def test_db_credentials_are_parsed_and_cached(monkeypatch):
    monkeypatch.setenv("DATABASE_SECRETS_NAME", "spire/test-db")
    secret = {"username": "spire", "password": "s3cret", "host": "db.internal"}
    manager = _secrets_manager(lambda SecretId: {"SecretString": json.dumps(secret)})

    assert manager.get_db_credentials() == secret
    assert manager.get_db_credentials() == secret
    manager._client.get_secret_value.assert_called_once_with(SecretId="spire/test-db")

    manager.clear_cache()
    manager.get_db_credentials()
    assert manager._client.get_secret_value.call_count == 2


def test_binary_secret_is_decoded():
    manager = _secrets_manager(lambda SecretId: {"SecretBinary": b'{"username": "u", "password": "p"}'})
    assert manager.get_db_credentials("bin")["username"] == "u"


def test_db_credentials_require_username_and_password():
    manager = _secrets_manager(lambda SecretId: {"SecretString": json.dumps({"username": "spire"})})

    with pytest.raises(ValueError, match="password"):
        manager.get_db_credentials("partial")


def test_stale_secret_served_when_refresh_fails():
    responses = iter([{"SecretString": "first"}, _client_error("ThrottlingException")])

    def get_secret_value(SecretId):
        response = next(responses)
        if isinstance(response, Exception):
            raise response
        return response

    manager = _secrets_manager(get_secret_value)
    assert manager.get_secret("db") == "first"

    manager.ttl_seconds = 0
    assert manager.get_secret("db") == "first"
    assert manager._client.get_secret_value.call_count == 2


def test_secret_fetch_failure_without_cache_raises():
    def get_secret_value(SecretId):
        raise _client_error("AccessDeniedException")

    with pytest.raises(ClientError):
        _secrets_manager(get_secret_value).get_secret("db")


def test_secrets_manager_is_shared_per_region():
    assert get_secrets_manager("eu-west-1") is get_secrets_manager("eu-west-1")
    assert get_secrets_manager("eu-west-1") is not get_secrets_manager("us-east-2")


def test_production_settings_fetch_db_secret_once(monkeypatch):
    secret = {"username": "spire", "password": "s3cret"}
    manager = _secrets_manager(lambda SecretId: {"SecretString": json.dumps(secret)})
    monkeypatch.setattr(config, "get_secrets_manager", lambda region_name=None: manager)

    production = config.Settings(
        environment="production", aws_region="eu-west-1", db_username="env-user", db_password="env-pw"
    )

    assert production.db_username == "spire"
    assert production.db_password.get_secret_value() == "s3cret"
    assert manager._client.get_secret_value.call_count == 1


def test_production_settings_keep_env_values_when_lookup_fails(monkeypatch):
    def get_secret_value(SecretId):
        raise _client_error("ResourceNotFoundException")

    manager = _secrets_manager(get_secret_value)
    monkeypatch.setattr(config, "get_secrets_manager", lambda region_name=None: manager)

    production = config.Settings(environment="production", db_username="env-user", db_password="env-pw")

    assert production.db_username == "env-user"
    assert production.db_password.get_secret_value() == "env-pw"


def test_development_settings_never_touch_aws(monkeypatch):
    def fail(region_name=None):
        raise AssertionError("Secrets Manager used outside production")

    monkeypatch.setattr(config, "get_secrets_manager", fail)

    assert config.Settings(environment="development", db_username="local").db_username == "local"
