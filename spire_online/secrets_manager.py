import json
import logging
import os
import time
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DATABASE_SECRET_ENV = "DATABASE_SECRETS_NAME"
DEFAULT_DATABASE_SECRET = "spire-online/db"
DEFAULT_TTL_SECONDS = 300

REQUIRED_DB_KEYS = ("username", "password")


class SecretsManager:
    """
    Reads the Spire Online database secret from AWS Secrets Manager.

    Values are cached per secret id for ``ttl_seconds`` so that several
    settings fields resolved in a row cost one AWS call, while a rotated RDS
    password is still picked up after the TTL. When a refresh fails the last
    known value is served.

    Args:
        region_name: AWS region, defaults to ``AWS_REGION`` or us-east-1
        ttl_seconds: How long a fetched secret stays fresh
    """

    def __init__(self, region_name: Optional[str] = None, ttl_seconds: float = DEFAULT_TTL_SECONDS):
        self.region_name = region_name or os.environ.get("AWS_REGION", "us-east-1")
        self.ttl_seconds = ttl_seconds
        self._client = None
        self._cache: Dict[str, Tuple[float, str]] = {}

    @property
    def client(self):
        if self._client is None:
            session = boto3.session.Session()
            self._client = session.client(service_name="secretsmanager", region_name=self.region_name)
        return self._client

    def _fetch(self, secret_id: str) -> str:
        response = self.client.get_secret_value(SecretId=secret_id)
        if response.get("SecretString") is not None:
            return response["SecretString"]
        return response["SecretBinary"].decode("utf-8")

    def get_secret(self, secret_id: str) -> str:
        now = time.monotonic()
        cached = self._cache.get(secret_id)
        if cached is not None and now - cached[0] < self.ttl_seconds:
            return cached[1]

        logger.info(f"Fetching secret {secret_id} in {self.region_name}")
        try:
            value = self._fetch(secret_id)
        except (BotoCoreError, ClientError) as e:
            if cached is not None:
                logger.warning(f"Refreshing secret {secret_id} failed, serving the cached value: {e}")
                return cached[1]
            logger.error(f"Failed to get secret {secret_id}: {e}")
            raise

        self._cache[secret_id] = (now, value)
        return value

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_db_credentials(self, secret_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Database credentials from the RDS-managed JSON secret.

        Args:
            secret_id: Secret name or ARN, defaults to ``DATABASE_SECRETS_NAME``

        Returns:
            dict: At least ``username`` and ``password``; RDS also stores
            ``host``, ``port`` and ``dbname``

        Raises:
            ValueError: If the secret is not JSON or lacks a required key
        """
        secret_id = secret_id or os.environ.get(DATABASE_SECRET_ENV, DEFAULT_DATABASE_SECRET)
        credentials = json.loads(self.get_secret(secret_id))
        missing = [key for key in REQUIRED_DB_KEYS if not credentials.get(key)]
        if missing:
            raise ValueError(f"Database secret {secret_id} is missing {', '.join(missing)}")
        return credentials


@lru_cache(maxsize=None)
def get_secrets_manager(region_name: Optional[str] = None) -> SecretsManager:
    """Process-wide manager per region, so its cache is shared by all callers."""
    return SecretsManager(region_name=region_name)
