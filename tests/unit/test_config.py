"""Tests for environment-driven configuration"""
import importlib
import pytest

import daybook.config as config
from daybook.exceptions import ConfigurationError


@pytest.fixture
def reload_config(monkeypatch):
    """Reload daybook.config under patched environment, restoring it afterwards"""
    def _reload(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(config)

    yield _reload

    monkeypatch.undo()
    importlib.reload(config)


class TestConfigValues:

    def test_defaults(self, reload_config, monkeypatch):
        for key in ("STORAGE_BACKEND", "STATE_CACHE_TTL_MINUTES", "DEFAULT_SNAPSHOT_MAX_DAYS", "ENABLE_STATE_CACHE"):
            monkeypatch.delenv(key, raising=False)

        cfg = reload_config()

        assert cfg.STORAGE_BACKEND == "postgres"
        assert cfg.STATE_CACHE_TTL_MINUTES == 5
        assert cfg.DEFAULT_SNAPSHOT_MAX_DAYS == 30
        assert cfg.ENABLE_STATE_CACHE is True

    def test_environment_overrides(self, reload_config):
        cfg = reload_config(STORAGE_BACKEND="MEMORY", STATE_CACHE_TTL_MINUTES="0", ENABLE_STATE_CACHE="false")

        assert cfg.STORAGE_BACKEND == "memory"
        assert cfg.STATE_CACHE_TTL_MINUTES == 0
        assert cfg.ENABLE_STATE_CACHE is False


class TestValidateConfig:

    def test_valid_memory_configuration(self, reload_config):
        cfg = reload_config(STORAGE_BACKEND="memory", ENABLE_SENTRY="false")

        cfg.validate_config()

    @pytest.mark.parametrize("env,config_key", [
        ({"STORAGE_BACKEND": "sqlite"}, "STORAGE_BACKEND"),
        ({"STATE_CACHE_TTL_MINUTES": "-1"}, "STATE_CACHE_TTL_MINUTES"),
        ({"DEFAULT_SNAPSHOT_MAX_DAYS": "0"}, "DEFAULT_SNAPSHOT_MAX_DAYS"),
        ({"DEFAULT_SNAPSHOT_MAX_COUNT": "0"}, "DEFAULT_SNAPSHOT_MAX_COUNT"),
        ({"ANALYTICS_MAX_RANGE_DAYS": "0"}, "ANALYTICS_MAX_RANGE_DAYS"),
        ({"ENABLE_SENTRY": "true", "SENTRY_DSN": ""}, "SENTRY_DSN"),
    ])
    def test_invalid_configuration(self, reload_config, env, config_key):
        cfg = reload_config(**{"STORAGE_BACKEND": "memory", **env})

        with pytest.raises(ConfigurationError) as exc_info:
            cfg.validate_config()

        assert exc_info.value.config_key == config_key
