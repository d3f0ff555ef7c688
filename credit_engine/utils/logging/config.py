"""
Logging configuration loader and setup.

Reads the optional ``config/logging.yaml`` and wires the ``credit_engine``
logger hierarchy to rotating, gzip-compressed JSON log files.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, cast

import yaml

from .console import ConsoleOutput
from .formatters import JSONFormatter
from .handlers import create_rotating_handler

ROOT_LOGGER_NAME = "credit_engine"

# Module-level cache for logger instances
_loggers: Dict[str, ConsoleOutput] = {}


def load_config(config_file: Optional[str] = None) -> Dict:
    """
    Load logging configuration from YAML file.

    Args:
        config_file: Path to YAML config file (default: config/logging.yaml)

    Returns:
        Dictionary containing logging configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_file is None:
        config_file = "config/logging.yaml"

    config_path = Path(config_file)

    if not config_path.exists():
        raise FileNotFoundError(f"Logging config file not found: {config_file}")

    with open(config_path, "r", encoding="utf-8") as f:
        config = cast(Dict[Any, Any], yaml.safe_load(f) or {})

    return config


def setup_logging(
    log_level: str = "INFO", log_file: Optional[str] = None, config_file: Optional[str] = None
) -> logging.Logger:
    """
    Setup logging for the scoring engine.

    Attaches two rotating handlers to the ``credit_engine`` logger: the main
    log at ``log_level`` and an error log that only receives warnings and up.
    Both write one JSON object per line.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional override for main log file path
        config_file: Optional path to logging config YAML

    Returns:
        The ``credit_engine`` logger

    Example:
        >>> setup_logging(log_level="INFO")
        >>> out = get_logger("credit_engine.scoring")
        >>> out.info("Scoring 2025-W07", emoji="📊")
    """
    try:
        config = load_config(config_file)
    except FileNotFoundError:
        config = _get_default_config()

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(numeric_level)

    # Avoid duplicate handlers when called more than once (CLI + app reload)
    root_logger.handlers.clear()

    rotation = config.get("rotation", {})
    files = config.get("files", {})

    main_handler = create_rotating_handler(
        log_file=log_file or files.get("main", "logs/credit_engine.log"),
        max_bytes=rotation.get("max_bytes", 10485760),
        backup_count=rotation.get("backup_count", 10),
        compress=rotation.get("compress", True),
        formatter=JSONFormatter(),
    )
    main_handler.setLevel(numeric_level)
    root_logger.addHandler(main_handler)

    error_handler = create_rotating_handler(
        log_file=files.get("error", "logs/credit_engine_error.log"),
        max_bytes=rotation.get("max_bytes", 10485760),
        backup_count=rotation.get("backup_count", 10),
        compress=rotation.get("compress", True),
        formatter=JSONFormatter(),
    )
    error_handler.setLevel(logging.WARNING)
    root_logger.addHandler(error_handler)

    for logger_name, logger_config in config.get("loggers", {}).items():
        child_logger = logging.getLogger(logger_name)
        child_level = str(logger_config.get("level", log_level)).upper()
        child_logger.setLevel(getattr(logging, child_level, logging.INFO))

    return root_logger


def get_logger(name: str) -> ConsoleOutput:
    """
    Get a cached ConsoleOutput wrapper for the named logger.

    Args:
        name: Logger name (e.g., 'credit_engine.leaderboard')

    Returns:
        ConsoleOutput instance wrapping the named logger

    Example:
        >>> out = get_logger("credit_engine.scoring")
        >>> out.progress(5, 10, "emp-042", status_emoji="✓")
    """
    if name not in _loggers:
        _loggers[name] = ConsoleOutput(logging.getLogger(name))

    return _loggers[name]


def _get_default_config() -> Dict:
    """Default logging configuration used when no YAML file is present."""
    return {
        "version": 1,
        "default_level": "INFO",
        "rotation": {"max_bytes": 10485760, "backup_count": 10, "compress": True},  # 10MB
        "files": {"main": "logs/credit_engine.log", "error": "logs/credit_engine_error.log"},
        "loggers": {
            "credit_engine.scoring": {"level": "INFO"},
            "credit_engine.personalization": {"level": "INFO"},
            "credit_engine.leaderboard": {"level": "INFO"},
            "credit_engine.dashboard": {"level": "INFO"},
        },
    }
