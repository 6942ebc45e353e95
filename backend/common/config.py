"""Application configuration using Pydantic Settings."""

import json
import logging
from functools import lru_cache

import boto3
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def get_secret_from_aws(secret_arn: str, region: str = "") -> str:
    """Fetch a secret value from AWS Secrets Manager.

    Args:
        secret_arn: The ARN or name of the secret.
        region: AWS region, empty to use the default resolution chain.

    Returns:
        The secret value, or empty string if not found.
    """
    if not secret_arn:
        return ""

    try:
        client = boto3.client("secretsmanager", region_name=region or None)
        response = client.get_secret_value(SecretId=secret_arn)
        return response.get("SecretString", "")
    except Exception as e:
        logger.error(f"Failed to fetch secret {secret_arn}: {e}")
        return ""


def get_database_url_from_aws(secret_arn: str, region: str = "") -> str:
    """Fetch database URL from AWS Secrets Manager.

    The database secret is stored as JSON with a 'url' field.

    Args:
        secret_arn: The ARN or name of the secret.
        region: AWS region, empty to use the default resolution chain.

    Returns:
        The database URL, or empty string if not found.
    """
    secret_string = get_secret_from_aws(secret_arn, region)
    if not secret_string:
        return ""

    try:
        secret_data = json.loads(secret_string)
        return secret_data.get("url", "")
    except (json.JSONDecodeError, TypeError, AttributeError):
        return ""


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All values may be provided via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Deployment Reclaimer"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: str = ""
    database_secret_arn: str = ""  # AWS Secrets Manager ARN for DB connection
    db_pool_size: int = 1

    # AWS Configuration
    aws_region: str = ""

    # Schema that holds the indexing node's metadata tables
    metadata_schema: str = "subgraphs"

    # Removal
    collect_removal_stats: bool = True

    # Maintenance jobs
    vacuum_interval_seconds: int = 60

    @property
    def resolved_database_url(self) -> str:
        """Get database URL, fetching from Secrets Manager if needed.

        Raises:
            ValueError: If neither DATABASE_URL nor DATABASE_SECRET_ARN yields a URL.
        """
        if self.database_url:
            return self.database_url
        if self.database_secret_arn:
            url = get_database_url_from_aws(self.database_secret_arn, self.aws_region)
            if url:
                return url
        raise ValueError("Database not configured. Set DATABASE_URL or DATABASE_SECRET_ARN")

    @property
    def resolved_log_level(self) -> int:
        """Map LOG_LEVEL to a logging level, defaulting to INFO."""
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
