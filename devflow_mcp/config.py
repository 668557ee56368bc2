"""
devflow_mcp.config

Paths, settings and logging shared by every devflow_mcp server process.

Environment (optional):
- DEVFLOW_CONFIG: path to a YAML settings file (default: <repo_root>/devflow.yaml if present)
- FS_CACHE_SIZE: override the filesystem content cache size
- LOG_FILE: override log file path (default: <repo_root>/logs/devflow_mcp.log)
- LOG_LEVEL: logging level name (default: INFO)
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import yaml


# --- Paths & constants ---
REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_FILE = REPO_ROOT / "devflow.yaml"
DEFAULT_LOG_DIR = REPO_ROOT / "logs"
DEFAULT_LOG_FILE = DEFAULT_LOG_DIR / "devflow_mcp.log"
LOGGER_NAME = "devflow_mcp"

DEFAULT_SETTINGS: dict[str, Any] = {
    "cache_size": 1000,
    "list_max_depth": 5,
    "search_max_results": 50,
    "search_max_depth": 10,
    "controller_template": "EchoController.cs",
}


# --- Logging setup ---
def configure_logging() -> logging.Logger:
    """
    function_purpose: Configure package-wide logging to both console and rotating file.

    - Creates the log directory if needed.
    - Console output goes to stderr; stdout is reserved for the MCP stdio channel.
    - Safe to call more than once: handlers are only attached the first time.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    if logger.handlers:
        return logger

    log_file = _resolve_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"
    )

    # Console handler (stderr)
    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    # Rotating file handler (5 files, 5MB each)
    fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
    fh.setLevel(level)
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    logger.info("Logging initialized. File: %s", str(log_file))
    return logger


def _resolve_log_file() -> Path:
    log_file_env = os.environ.get("LOG_FILE")
    return Path(log_file_env) if log_file_env else DEFAULT_LOG_FILE


# --- Settings ---
def _resolve_config_file() -> Path | None:
    """
    function_purpose: Resolve the YAML settings file from environment or default location.

    Returns None when no explicit file is configured and the default does not exist.
    """
    env_path = os.environ.get("DEVFLOW_CONFIG")
    if env_path:
        return Path(env_path).resolve()
    return DEFAULT_CONFIG_FILE if DEFAULT_CONFIG_FILE.exists() else None


def _parse_settings_yaml(text: str) -> dict[str, Any]:
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError("settings file must parse to a mapping")
    return data


def load_settings(config_file: Path | None = None) -> dict[str, Any]:
    """
    function_purpose: Build the effective settings mapping.

    Precedence (lowest to highest): DEFAULT_SETTINGS, YAML file, environment overrides.
    Unknown YAML keys are ignored with a warning.
    """
    logger = logging.getLogger(LOGGER_NAME)
    settings = dict(DEFAULT_SETTINGS)

    path = config_file if config_file is not None else _resolve_config_file()
    if path is not None:
        if not path.is_file():
            raise FileNotFoundError(f"settings file not found: {path}")
        data = _parse_settings_yaml(path.read_text(encoding="utf-8"))
        for key, value in data.items():
            if key not in DEFAULT_SETTINGS:
                logger.warning("Ignoring unknown setting '%s' in %s", key, path)
                continue
            settings[key] = value

    cache_env = os.environ.get("FS_CACHE_SIZE")
    if cache_env:
        try:
            settings["cache_size"] = int(cache_env)
        except ValueError:
            logger.warning("FS_CACHE_SIZE is not an integer: %r", cache_env)

    return settings
