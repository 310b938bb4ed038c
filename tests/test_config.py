"""Tests for settings validation (pollgate/core/config.py)."""

import pytest

from pollgate.core.config import DEFAULT_VOTE_TOKEN_SECRET, Settings, validate_settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestDefaults:
    def test_admission_defaults(self):
        settings = _settings()
        assert settings.vote_token_ttl_seconds == 120
        assert settings.vote_rate_limit_max == 5
        assert settings.vote_rate_limit_window_seconds == 3600
        assert settings.summary_rate_limit_max == 60
        assert settings.summary_rate_limit_window_seconds == 60
        assert settings.max_votes_per_ip == 20

    def test_rate_limit_auto_follows_environment(self):
        assert _settings(env="development").is_rate_limit_enabled is False
        assert _settings(env="production").is_rate_limit_enabled is True
        assert _settings(env="production", rate_limit_enabled=False).is_rate_limit_enabled is False


class TestDatabaseUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgres://u:p@db/poll", "postgresql+psycopg://u:p@db/poll"),
            ("postgresql://u:p@db/poll", "postgresql+psycopg://u:p@db/poll"),
            ("postgresql+psycopg://u:p@db/poll", "postgresql+psycopg://u:p@db/poll"),
            ("sqlite:///./poll.db", "sqlite:///./poll.db"),
        ],
    )
    def test_sync_url_uses_psycopg(self, url, expected):
        assert _settings(database_url=url).database_url_sync == expected


class TestValidateSettings:
    def test_development_defaults_pass(self):
        validate_settings(_settings())

    def test_production_rejects_default_secret(self):
        settings = _settings(env="production", cors_origins="https://poll.example.org")
        assert settings.vote_token_secret == DEFAULT_VOTE_TOKEN_SECRET
        with pytest.raises(SystemExit):
            validate_settings(settings)

    def test_production_rejects_wildcard_cors(self):
        settings = _settings(env="production", vote_token_secret="a" * 48)
        with pytest.raises(SystemExit):
            validate_settings(settings)

    def test_production_with_real_values_passes(self):
        validate_settings(
            _settings(
                env="production",
                vote_token_secret="a" * 48,
                cors_origins="https://poll.example.org",
                admin_api_key="key",
            )
        )

    @pytest.mark.parametrize(
        "field", ["vote_token_ttl_seconds", "vote_rate_limit_max", "max_votes_per_ip"]
    )
    def test_non_positive_limits_rejected(self, field):
        with pytest.raises(SystemExit):
            validate_settings(_settings(**{field: 0}))

    def test_production_without_shared_limiter_storage_warns(self, caplog):
        settings = _settings(
            env="production",
            vote_token_secret="a" * 48,
            cors_origins="https://poll.example.org",
            admin_api_key="key",
        )
        assert settings.rate_limit_storage_uri == ""
        validate_settings(settings)
        assert "RATE_LIMIT_STORAGE_URI" in caplog.text

    def test_shared_limiter_storage_silences_warning(self, caplog):
        validate_settings(
            _settings(
                env="production",
                vote_token_secret="a" * 48,
                cors_origins="https://poll.example.org",
                admin_api_key="key",
                rate_limit_storage_uri="redis://localhost:6379/0",
            )
        )
        assert "RATE_LIMIT_STORAGE_URI" not in caplog.text
