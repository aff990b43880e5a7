"""Environment variable overrides.

Recognised variables (all optional):

- ``GEAR_OCR_LOG_LEVEL``: DEBUG/INFO/WARNING/ERROR/CRITICAL
- ``GEAR_OCR_DEBUG``: truthy value enables debug logging
- ``GEAR_OCR_LOG_DIR``: directory for rotating log files
- ``GEAR_OCR_TESSERACT_CMD``: path to the tesseract binary
- ``GEAR_OCR_AUTO_INTERVAL_MS``: auto-capture sampling interval
"""
import os
import logging
from typing import Optional, Dict, Any, Mapping, Union
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ENV_PREFIX = "GEAR_OCR_"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class EnvironmentConfig:
    """Immutable environment configuration object."""
    log_level: Optional[str] = None
    debug_logging: bool = False
    log_dir: Optional[str] = None
    tesseract_cmd: Optional[str] = None
    auto_interval_ms: Optional[int] = None


class EnvironmentError(Exception):
    """Custom exception for environment configuration errors."""
    pass


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def validate_numeric_range(value: Union[str, int, float],
                           min_val: Optional[Union[int, float]] = None,
                           max_val: Optional[Union[int, float]] = None,
                           value_type: type = int) -> Union[int, float]:
    """Validate numeric value within specified range.

    Raises:
        EnvironmentError: If validation fails
    """
    try:
        numeric_value = value_type(value)
    except (ValueError, TypeError):
        raise EnvironmentError(f"Invalid {value_type.__name__} value: {value}")

    if min_val is not None and numeric_value < min_val:
        raise EnvironmentError(f"Value {numeric_value} below minimum {min_val}")

    if max_val is not None and numeric_value > max_val:
        raise EnvironmentError(f"Value {numeric_value} above maximum {max_val}")

    return numeric_value


def load_environment_config(environ: Optional[Mapping[str, str]] = None) -> EnvironmentConfig:
    """Read ``GEAR_OCR_*`` variables.

    Raises:
        EnvironmentError: If a variable is present but invalid
    """
    env = os.environ if environ is None else environ

    log_level = env.get(f"{ENV_PREFIX}LOG_LEVEL")
    if log_level is not None:
        log_level = log_level.strip().upper()
        if log_level not in VALID_LOG_LEVELS:
            raise EnvironmentError(f"Invalid log level: {log_level}")

    auto_interval = env.get(f"{ENV_PREFIX}AUTO_INTERVAL_MS")
    if auto_interval is not None:
        auto_interval = validate_numeric_range(auto_interval, min_val=100, max_val=60000)

    return EnvironmentConfig(
        log_level=log_level,
        debug_logging=_parse_bool(env.get(f"{ENV_PREFIX}DEBUG", "")),
        log_dir=env.get(f"{ENV_PREFIX}LOG_DIR") or None,
        tesseract_cmd=env.get(f"{ENV_PREFIX}TESSERACT_CMD") or None,
        auto_interval_ms=auto_interval,
    )


def apply_environment_overrides(config_dict: Dict[str, Any], env_config: EnvironmentConfig) -> Dict[str, Any]:
    """Apply environment overrides on top of file/default configuration."""
    if env_config.log_level:
        config_dict["log_level"] = env_config.log_level
    if env_config.debug_logging:
        config_dict["debug"] = True
        config_dict["log_level"] = "DEBUG"
    if env_config.log_dir:
        config_dict["log_dir"] = env_config.log_dir
        config_dict["enable_file_logging"] = True
    if env_config.tesseract_cmd:
        config_dict["tesseract_cmd"] = env_config.tesseract_cmd
    if env_config.auto_interval_ms is not None:
        config_dict["auto_interval_ms"] = env_config.auto_interval_ms

    logger.debug("Applied environment variable overrides to configuration")
    return config_dict
