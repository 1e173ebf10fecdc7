"""
Tests for settings loading.
"""
from oauth_service.core.config import Settings
from oauth_service.models.database import to_async_url


def test_defaults(monkeypatch):
    monkeypatch.delenv("OAUTH_SERVICE__STORAGE_BACKEND", raising=False)
    monkeypatch.delenv("OAUTH_SERVICE__DB_URL", raising=False)

    config = Settings(_env_file=None)

    assert config.access_token_lifetime == 3600
    assert config.refresh_token_lifetime == 30 * 24 * 3600
    assert config.authorization_code_lifetime == 600
    assert config.storage_backend == "sqlalchemy"
    assert config.revoke_lineage_on_reuse is False
    assert config.cors_allow_origin == "*"


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("OAUTH_SERVICE__ENVIRONMENT", "production")
    monkeypatch.setenv("OAUTH_SERVICE__ACCESS_TOKEN_LIFETIME", "900")
    monkeypatch.setenv("OAUTH_SERVICE__REVOKE_LINEAGE_ON_REUSE", "true")

    config = Settings(_env_file=None)

    assert config.is_production
    assert not config.is_development
    assert config.access_token_lifetime == 900
    assert config.revoke_lineage_on_reuse is True


def test_sqlite_url_uses_async_driver():
    assert to_async_url("sqlite:///data/oauth.db") == "sqlite+aiosqlite:///data/oauth.db"
    assert to_async_url("postgresql+asyncpg://db/oauth") == "postgresql+asyncpg://db/oauth"
