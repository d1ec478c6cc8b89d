"""
Module: settings.py
Description: Client configuration using pydantic-settings.

Reads all SQS client settings from environment variables (prefix
``SQS_``) with validation and defaults. Supports .env files for local
development. Settings are frozen once constructed.

Credentials are optional at this level so that settings can be built
and inspected without them; SQSConnection.connect() is what insists on
them being present.
"""

from typing import Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ReceiveMessage returns at most 10 messages per request.
SQS_MAX_MESSAGES_PER_REQ = 10
SQS_MAX_QUEUE_NAME = 80
SQS_MAX_VISIBILITY_TIMEOUT = 43_200


class SQSSettings(BaseSettings):
    """SQS client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SQS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Credentials
    aws_access_key_id: Optional[str] = Field(
        default=None,
        description="AWS access key id"
    )
    aws_secret_access_key: Optional[SecretStr] = Field(
        default=None,
        description="AWS secret access key"
    )
    aws_region: str = Field(default="us-east-1", description="AWS region")
    endpoint_url: Optional[str] = Field(
        default=None,
        description="Override endpoint for SQS-compatible local services"
    )

    # Queue naming
    prefix: str = Field(default="", description="Optional queue name prefix")
    environment: str = Field(
        default="development",
        min_length=1,
        description="Environment name embedded in every queue name"
    )
    max_queue_name_length: int = Field(
        default=SQS_MAX_QUEUE_NAME,
        ge=1,
        le=SQS_MAX_QUEUE_NAME,
        description="Queue names are truncated to this many characters"
    )

    # Delivery buffer
    messages_per_req: int = Field(
        default=SQS_MAX_MESSAGES_PER_REQ,
        ge=1,
        le=SQS_MAX_MESSAGES_PER_REQ,
        description="Messages fetched per ReceiveMessage call"
    )
    visibility_timeout: int = Field(
        default=30,
        ge=0,
        le=SQS_MAX_VISIBILITY_TIMEOUT,
        description="Visibility timeout in seconds for received messages"
    )
    visibility_reserve: int = Field(
        default=10,
        ge=0,
        description="Seconds reserved for decoding and deleting a buffered message"
    )

    # Transport retry and timeouts
    aws_reiteration_time: float = Field(
        default=2,
        ge=0,
        description="Seconds to keep retrying throttling and 5xx errors"
    )
    http_retry_count: int = Field(
        default=2,
        ge=0,
        description="Low-level HTTP retries per request"
    )
    http_retry_delay: float = Field(
        default=1,
        ge=0,
        description="Base delay in seconds between high-level retries"
    )
    http_open_timeout: float = Field(
        default=2,
        gt=0,
        description="Connect timeout in seconds"
    )
    http_read_timeout: float = Field(
        default=10,
        gt=0,
        description="Read timeout in seconds"
    )

    # Enqueue path
    submit_workers: int = Field(
        default=4,
        ge=1,
        description="Threads used for detached message submission"
    )

    # Observability
    log_level: str = Field(default="INFO", description="Logging level")
    metrics_enabled: bool = Field(
        default=False,
        description="Publish queue counters to CloudWatch"
    )
    metrics_namespace: str = Field(
        default="SQSDispatch",
        description="CloudWatch metrics namespace"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @model_validator(mode='after')
    def validate_visibility_window(self) -> 'SQSSettings':
        """Reserve must leave part of the visibility timeout for delivery."""
        if self.visibility_reserve >= self.visibility_timeout:
            raise ValueError(
                "visibility_reserve must be less than visibility_timeout "
                f"(got reserve={self.visibility_reserve}, timeout={self.visibility_timeout})"
            )
        return self

    @property
    def has_credentials(self) -> bool:
        """True when both halves of the credential pair are set."""
        return bool(
            self.aws_access_key_id
            and self.aws_secret_access_key
            and self.aws_secret_access_key.get_secret_value()
        )

    @property
    def delivery_window(self) -> int:
        """Seconds after receipt during which a buffered message may still be delivered."""
        return self.visibility_timeout - self.visibility_reserve


def load_settings(**overrides) -> SQSSettings:
    """
    Build settings from the environment, applying explicit overrides.

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        Validated SQSSettings

    Raises:
        pydantic.ValidationError: If any value is invalid
    """
    return SQSSettings(**overrides)
