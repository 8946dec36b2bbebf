from __future__ import annotations

import logging
import os
import sys
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "YieldOverlay"
DEV_MODE_ENV_VAR = "YIELD_OVERLAY_DEV_MODE"
LOG_DIR_ENV_VAR = "YIELD_OVERLAY_LOG_DIR"
LOG_FILE_NAME = "yield-overlay.log"
_MAX_LOG_BYTES = 512 * 1024
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def is_dev_mode(value: Optional[str] = None) -> bool:
    token = (value if value is not None else os.getenv(DEV_MODE_ENV_VAR, "")).strip().lower()
    return token in {"1", "true", "yes", "on"}


def resolve_logs_dir(log_dir_name: str = "YieldOverlay") -> Path:
    """
    Resolve the directory to store overlay logs.

    Strategy:
    - Use YIELD_OVERLAY_LOG_DIR if set.
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    candidates = []
    env_override = os.environ.get(LOG_DIR_ENV_VAR)
    if env_override:
        candidates.append(Path(env_override).expanduser())

    state_home = Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))
    cache_home = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))
    candidates.append(state_home / log_dir_name)
    candidates.append(cache_home / log_dir_name)
    candidates.append(Path.cwd() / "logs" / log_dir_name)

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


def build_rotating_file_handler(
    log_dir: Path,
    filename: str,
    *,
    retention: int = 5,
    max_bytes: int = _MAX_LOG_BYTES,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """Construct a rotating file handler with sane defaults."""
    retention = max(1, retention)
    backup_count = max(0, retention - 1)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    if formatter is not None:
        handler.setFormatter(formatter)
    return handler


def resolve_log_level(debug_enabled: bool) -> int:
    return logging.DEBUG if debug_enabled else logging.INFO


def configure_logging(
    *,
    retention: int = 5,
    debug_enabled: Optional[bool] = None,
    log_dir: Optional[Path] = None,
    stream: bool = True,
) -> logging.Logger:
    """Attach file (and optionally stderr) handlers to the package logger.

    Safe to call repeatedly; previously attached handlers are replaced.
    """
    debug = is_dev_mode() if debug_enabled is None else debug_enabled
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolve_log_level(debug))
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_LOG_FORMAT)
    target_dir = log_dir if log_dir is not None else resolve_logs_dir()
    try:
        logger.addHandler(build_rotating_file_handler(target_dir, LOG_FILE_NAME, retention=retention, formatter=formatter))
    except OSError as exc:
        print(f"Yield overlay file logging unavailable: {exc}", file=sys.stderr)
    if stream:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)
    return logger
