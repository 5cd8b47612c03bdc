import pytest
from pydantic import ValidationError

from shopgate.app.core.config import Settings
from shopgate.app.middleware.rate_limit import DEFAULT_POLICIES, RateLimitPolicy
from shopgate.app.services.retry import RetryOptions


def test_default_policies_match_builtin_table() -> None:
    settings = Settings(_env_file=None)

    assert settings.rate_limit_policies() == DEFAULT_POLICIES


def test_policy_overridden_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_AUTH_CAPACITY", "10")
    monkeypatch.setenv("RATE_LIMIT_AUTH_REFILL_INTERVAL", "30")

    policies = Settings(_env_file=None).rate_limit_policies()
    assert policies["auth"] == RateLimitPolicy("auth", capacity=10, refill_rate=1, refill_interval=30.0)


@pytest.mark.parametrize(
    "env",
    [
        {"RATE_LIMIT_API_CAPACITY": "0"},
        {"RATE_LIMIT_SENSITIVE_REFILL_RATE": "-1"},
        {"RATE_LIMIT_READ_REFILL_INTERVAL": "0"},
        {"RATE_LIMIT_CLEANUP_INTERVAL": "-5"},
        {"RETRY_MAX_RETRIES": "-1"},
        {"RETRY_BACKOFF_MULTIPLIER": "0.5"},
    ],
)
def test_invalid_values_rejected(monkeypatch, env: dict[str, str]) -> None:
    for key, value in env.items():
        monkeypatch.setenv(key, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_retry_options_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("RETRY_MAX_RETRIES", "5")
    monkeypatch.setenv("RETRY_INITIAL_DELAY", "0.25")

    options = Settings(_env_file=None).retry_options()
    assert options == RetryOptions(max_retries=5, initial_delay=0.25, max_delay=30.0, backoff_multiplier=2.0)


def test_cors_origins_accepts_host_without_json(monkeypatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "43.163.94.63")

    settings = Settings(_env_file=None)
    assert "http://43.163.94.63" in settings.cors_origins
    assert "https://43.163.94.63" in settings.cors_origins


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('["http://localhost:3000"]', ["http://localhost:3000"]),
        ("*", ["*"]),
        ("[]", []),
        ("", []),
    ],
)
def test_cors_origins_parsing_variants(monkeypatch, raw: str, expected: list[str]) -> None:
    monkeypatch.setenv("CORS_ORIGINS", raw)

    settings = Settings(_env_file=None)
    assert settings.cors_origins == expected
