# tests/test_config.py
import pytest
from pydantic import ValidationError

from carmarket_admin.core.config import Settings


def test_defaults_match_auth_policy():
    s = Settings()
    assert s.ACCESS_TOKEN_EXPIRE_MINUTES == 7 * 24 * 60
    assert s.RESET_TOKEN_EXPIRE_MINUTES == 60
    assert s.RESET_REQUEST_COOLDOWN_MINUTES == 20
    assert s.RESET_MAX_ATTEMPTS == 5
    assert (s.REGISTER_RATE_LIMIT, s.REGISTER_RATE_WINDOW_SECONDS) == (5, 900)


@pytest.mark.parametrize("secret", [None, "", "changethis"])
def test_production_requires_real_jwt_secret(secret):
    with pytest.raises(ValidationError):
        Settings(MODE="production", JWT_SECRET=secret)


def test_production_accepts_configured_secret():
    assert Settings(MODE="production", JWT_SECRET="s3cret").JWT_SECRET == "s3cret"


@pytest.mark.parametrize("port", ["abc", "0", "70000"])
def test_invalid_email_port_falls_back(port):
    assert Settings(EMAIL_PORT=port).EMAIL_PORT == 587


def test_client_url_and_cors_origins_are_normalised():
    s = Settings(ADMIN_CLIENT_URL="https://admin.example.com/", BACKEND_CORS_ORIGINS="https://a.com/, https://b.com")
    assert s.ADMIN_CLIENT_URL == "https://admin.example.com"
    assert s.all_cors_origins == ["https://a.com", "https://b.com"]


def test_pool_size_is_split_across_workers():
    assert Settings(DB_POOL_SIZE=10, WEB_CONCURRENCY=2).POOL_SIZE == 5
    assert Settings(DB_POOL_SIZE=2, WEB_CONCURRENCY=4).POOL_SIZE == 2
