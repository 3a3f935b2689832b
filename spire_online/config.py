import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .secrets_manager import get_secrets_manager

logger = logging.getLogger(__name__)

DB_SECRET_KEYS = {"db_username": "username", "db_password": "password"}

class Settings(BaseSettings):
    aws_region: str = "us-east-1"
    environment: str = "development"
    log_level: str = "INFO"
    host: str = "localhost"
    db_username: str = "postgres"
    db_password: SecretStr = SecretStr("postgres")
    database: str = "spire"
    port: int = 5432
    # Full SQLAlchemy async URL, takes precedence over the host/port/credentials above
    database_url: Optional[str] = None
    firebase_project_id: Optional[str] = None
    invite_code_length: int = 5  # bytes of entropy, hex encoded
    invite_code_max_attempts: int = 5
    default_invite_expires_minutes: int = 1440
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("db_username", "db_password", mode="before")
    @classmethod
    def load_secrets(cls, v, info):
        if info.data.get("environment") != "production":
            return v
        try:
            credentials = get_secrets_manager(info.data.get("aws_region")).get_db_credentials()
        except (BotoCoreError, ClientError, ValueError) as e:
            # Keep the environment value
            logger.warning(f"Could not load {info.field_name} from Secrets Manager: {e}")
            return v
        return credentials[DB_SECRET_KEYS[info.field_name]]

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.db_username}:{self.db_password.get_secret_value()}"
            f"@{self.host}:{self.port}/{self.database}"
        )

settings = Settings()
