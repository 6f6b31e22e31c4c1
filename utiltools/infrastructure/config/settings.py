"""Configuration layers for utiltools.

Values come from, highest priority first:

1. Test overrides (``set_config_for_testing``)
2. ``UTILTOOLS_*`` environment variables
3. A ``.env`` file found at or above the working directory (exported into
   the environment without replacing variables that are already set)
4. ``~/.utiltools/config.yaml``, nested mappings addressed as ``a.b.c``
5. The default handed to ``get_config``
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Locations ---
DEFAULT_CONFIG_DIR = Path.home() / ".utiltools"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "UTILTOOLS_"
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# --- Process-wide layers ---
_yaml_layer: Dict[str, Any] = {}
_test_overrides: Dict[str, Any] = {}
_loaded = False


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    if not config_file.exists():
        logger.debug(f"No YAML config at {config_file}")
        return {}
    try:
        with open(config_file, 'r', encoding='utf-8') as fh:
            parsed = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
        return {}
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        logger.warning(f"Ignoring {config_file}: top level is {type(parsed).__name__}, not a mapping")
        return {}
    logger.info(f"Read configuration from {config_file}")
    return parsed


def load_configuration(config_file: Optional[Path] = None, env_file: Optional[Path] = None) -> None:
    """Reads the YAML file and exports the .env file once per process.

    Args:
        config_file: YAML file to read (~/.utiltools/config.yaml if None).
        env_file: .env file to export (searched upwards from the cwd if None).
    """
    global _yaml_layer, _loaded
    if _loaded:
        return

    _yaml_layer = _read_yaml(config_file or DEFAULT_CONFIG_FILE)

    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path is None:
        logger.debug("No .env file at or above the working directory")
    elif load_dotenv(dotenv_path=dotenv_path, override=False):
        logger.info(f"Exported variables from {dotenv_path}")

    _loaded = True


def reset_configuration() -> None:
    """Forgets anything loaded so the next load_configuration() starts fresh."""
    global _yaml_layer, _loaded
    _yaml_layer = {}
    _loaded = False


def _coerce(raw: str) -> Any:
    """Environment values are strings; turn 'true', '12' and '0.5' into Python values."""
    lowered = raw.strip().lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'
    try:
        return float(raw) if '.' in raw else int(raw)
    except ValueError:
        return raw


def _from_yaml(key: str) -> Any:
    if key in _yaml_layer:
        return _yaml_layer[key]
    node: Any = _yaml_layer
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def env_var_name(key: str) -> str:
    return ENV_PREFIX + key.upper().replace('.', '_')


def get_config(key: str, default: Any = None) -> Any:
    """Resolves a dotted key such as 'cache.sweep_interval_seconds' through the layers."""
    if key in _test_overrides:
        return _test_overrides[key]

    raw = os.environ.get(env_var_name(key))
    if raw is not None:
        return _coerce(raw)

    value = _from_yaml(key)
    return default if value is None else value


def find_dotenv_path() -> Optional[Path]:
    """Returns the nearest .env at or above the working directory, if any."""
    here = Path.cwd()
    for directory in (here, *here.parents):
        candidate = directory / ENV_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Pins keys to fixed values, above every other layer."""
    _test_overrides.update(config_dict)


def clear_test_config() -> None:
    _test_overrides.clear()


# --- Typed Settings ---

@dataclass(frozen=True)
class UtilitySettings:
    cache_sweep_interval_seconds: float = 60
    cache_default_ttl_seconds: int = 300
    retry_gc_interval_seconds: float = 60
    retry_gc_horizon_seconds: float = 3600
    batch_simulated_max_delay_ms: int = 1000
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = DEFAULT_LOG_FORMAT


def load_settings() -> UtilitySettings:
    """Builds UtilitySettings from the configuration layers."""
    load_configuration()
    defaults = UtilitySettings()
    return UtilitySettings(
        cache_sweep_interval_seconds=float(get_config('cache.sweep_interval_seconds', defaults.cache_sweep_interval_seconds)),
        cache_default_ttl_seconds=int(get_config('cache.default_ttl_seconds', defaults.cache_default_ttl_seconds)),
        retry_gc_interval_seconds=float(get_config('retry.gc_interval_seconds', defaults.retry_gc_interval_seconds)),
        retry_gc_horizon_seconds=float(get_config('retry.gc_horizon_seconds', defaults.retry_gc_horizon_seconds)),
        batch_simulated_max_delay_ms=int(get_config('batch.simulated_max_delay_ms', defaults.batch_simulated_max_delay_ms)),
        log_level=str(get_config('logging.level', defaults.log_level)).upper(),
        log_file=get_config('logging.file', defaults.log_file),
        log_format=str(get_config('logging.format', defaults.log_format)),
    )
