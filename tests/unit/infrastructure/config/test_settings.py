import logging

import pytest

from utiltools.infrastructure.config import settings
from utiltools.infrastructure.config.settings import (
    UtilitySettings, env_var_name, get_config, load_configuration, load_settings, set_config_for_testing,
)
from utiltools.infrastructure.monitoring.logger_setup import resolve_log_level, setup_logging


def test_defaults_when_nothing_configured():
    assert load_settings() == UtilitySettings()


def test_yaml_file_is_read(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "cache:\n"
        "  default_ttl_seconds: 120\n"
        "logging:\n"
        "  level: debug\n"
    )

    load_configuration(config_file=config_file)
    loaded = load_settings()

    assert loaded.cache_default_ttl_seconds == 120
    assert loaded.log_level == "DEBUG"
    assert loaded.cache_sweep_interval_seconds == 60


def test_environment_overrides_yaml(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("retry:\n  gc_horizon_seconds: 10\n")
    monkeypatch.setenv("UTILTOOLS_RETRY_GC_HORIZON_SECONDS", "7200")

    load_configuration(config_file=config_file)

    assert load_settings().retry_gc_horizon_seconds == 7200


def test_dotenv_file_in_working_directory_is_loaded(tmp_path, monkeypatch):
    # Register the variable so monkeypatch removes whatever load_dotenv exports
    monkeypatch.setenv("UTILTOOLS_BATCH_SIMULATED_MAX_DELAY_MS", "unset")
    monkeypatch.delenv("UTILTOOLS_BATCH_SIMULATED_MAX_DELAY_MS")
    (tmp_path / ".env").write_text("UTILTOOLS_BATCH_SIMULATED_MAX_DELAY_MS=25\n")

    loaded = load_settings()

    assert loaded.batch_simulated_max_delay_ms == 25


def test_test_overrides_win():
    set_config_for_testing({"cache.sweep_interval_seconds": 5})
    assert load_settings().cache_sweep_interval_seconds == 5


def test_malformed_yaml_is_logged_not_raised(tmp_path, caplog):
    caplog.set_level(logging.ERROR, logger=settings.__name__)
    config_file = tmp_path / "config.yaml"
    config_file.write_text("cache: [unclosed\n")

    load_configuration(config_file=config_file)

    assert "Failed to load or parse YAML" in caplog.text
    assert get_config("cache.default_ttl_seconds", 300) == 300


def test_env_var_name_uses_prefix():
    assert env_var_name("cache.default_ttl_seconds") == "UTILTOOLS_CACHE_DEFAULT_TTL_SECONDS"


@pytest.mark.parametrize("level, expected", [
    ("debug", logging.DEBUG),
    ("WARNING", logging.WARNING),
    (logging.ERROR, logging.ERROR),
    ("nonsense", logging.INFO),
])
def test_resolve_log_level(level, expected):
    assert resolve_log_level(level) == expected


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "utiltools.log"

    setup_logging(log_level="INFO", log_file=str(log_file))
    logging.getLogger("utiltools.test").info("hello file")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "hello file" in log_file.read_text()
    assert logging.getLogger().level == logging.INFO
