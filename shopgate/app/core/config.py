import json
import re
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

if TYPE_CHECKING:
    from shopgate.app.middleware.rate_limit.models import RateLimitPolicy
    from shopgate.app.services.retry import RetryOptions


POLICY_NAMES = ("auth", "api", "read", "sensitive", "export")


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # Prefer JSON, but tolerate a bare host list.
    if raw.startswith(("[", '"')):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]
        if isinstance(parsed, str):
            raw = parsed.strip()
            if not raw or raw == "[]":
                return []
            if raw == "*":
                return ["*"]

    origins: list[str] = []
    for part in (p for p in re.split(r"[,\s]+", raw) if p):
        if part == "*":
            return ["*"]
        if "://" in part:
            origins.append(part)
            continue
        origins.append(f"http://{part}")
        origins.append(f"https://{part}")

    return list(dict.fromkeys(origins))


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    Durations are in seconds.
    """

    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # Rate limit policy classes (capacity / tokens per interval / interval)
    rate_limit_auth_capacity: int = 5
    rate_limit_auth_refill_rate: int = 1
    rate_limit_auth_refill_interval: float = 60.0

    rate_limit_api_capacity: int = 100
    rate_limit_api_refill_rate: int = 10
    rate_limit_api_refill_interval: float = 60.0

    rate_limit_read_capacity: int = 200
    rate_limit_read_refill_rate: int = 20
    rate_limit_read_refill_interval: float = 60.0

    rate_limit_sensitive_capacity: int = 3
    rate_limit_sensitive_refill_rate: int = 1
    rate_limit_sensitive_refill_interval: float = 300.0

    rate_limit_export_capacity: int = 5
    rate_limit_export_refill_rate: int = 1
    rate_limit_export_refill_interval: float = 1.0

    # Idle buckets older than this are dropped by the cleanup sweep
    rate_limit_bucket_max_age: float = 3600.0
    rate_limit_cleanup_interval: float = 300.0

    # Retry defaults for calls to the hosted database
    retry_max_retries: int = 3
    retry_initial_delay: float = 1.0
    retry_max_delay: float = 30.0
    retry_backoff_multiplier: float = 2.0

    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator(
        "rate_limit_auth_capacity",
        "rate_limit_auth_refill_rate",
        "rate_limit_api_capacity",
        "rate_limit_api_refill_rate",
        "rate_limit_read_capacity",
        "rate_limit_read_refill_rate",
        "rate_limit_sensitive_capacity",
        "rate_limit_sensitive_refill_rate",
        "rate_limit_export_capacity",
        "rate_limit_export_refill_rate",
    )
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate rate limit values are positive."""
        if v < 1:
            raise ValueError("Rate limit values must be at least 1")
        return v

    @field_validator(
        "rate_limit_auth_refill_interval",
        "rate_limit_api_refill_interval",
        "rate_limit_read_refill_interval",
        "rate_limit_sensitive_refill_interval",
        "rate_limit_export_refill_interval",
        "rate_limit_bucket_max_age",
        "rate_limit_cleanup_interval",
        "retry_initial_delay",
        "retry_max_delay",
    )
    @classmethod
    def validate_duration_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("Durations must be positive")
        return v

    @field_validator("retry_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("retry_max_retries must not be negative")
        return v

    @field_validator("retry_backoff_multiplier")
    @classmethod
    def validate_backoff_multiplier(cls, v: float) -> float:
        if v < 1:
            raise ValueError("retry_backoff_multiplier must be at least 1")
        return v

    def rate_limit_policies(self) -> dict[str, "RateLimitPolicy"]:
        """Build the named rate limit policy table from these settings."""
        from shopgate.app.middleware.rate_limit.models import RateLimitPolicy

        return {
            name: RateLimitPolicy(
                name=name,
                capacity=getattr(self, f"rate_limit_{name}_capacity"),
                refill_rate=getattr(self, f"rate_limit_{name}_refill_rate"),
                refill_interval=getattr(self, f"rate_limit_{name}_refill_interval"),
            )
            for name in POLICY_NAMES
        }

    def retry_options(self) -> "RetryOptions":
        """Build the default retry options from these settings."""
        from shopgate.app.services.retry import RetryOptions

        return RetryOptions(
            max_retries=self.retry_max_retries,
            initial_delay=self.retry_initial_delay,
            max_delay=self.retry_max_delay,
            backoff_multiplier=self.retry_backoff_multiplier,
        )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
