import logging
import os
from datetime import datetime
from pathlib import Path

_LOGGERS = {}


def _log_dir() -> Path:
    return Path(os.getenv("GUILDLEVELS_LOG_DIR", "logs"))


def _file_logging_enabled() -> bool:
    flag = os.getenv("GUILDLEVELS_LOG_TO_FILE", "1")
    return flag.lower() not in {"0", "false", "no", "off"}


def get_logger(
    name: str,
    *,
    runtime: str = "guildlevels",
) -> logging.Logger:
    """
    Create or retrieve a named logger.

    Parameters:
    - name: logger namespace (e.g. permissions.resolver, runtime.hot_reload)
    - runtime: log file prefix (guildlevels | discord)

    File output goes to GUILDLEVELS_LOG_DIR (default: logs/) unless
    GUILDLEVELS_LOG_TO_FILE is switched off.
    """
    cache_key = f"{runtime}:{name}"
    if cache_key in _LOGGERS:
        return _LOGGERS[cache_key]

    logger = logging.getLogger(cache_key)
    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    # ------------------------------
    # Console handler
    # ------------------------------
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    # ------------------------------
    # File handler (one per run)
    # ------------------------------
    if _file_logging_enabled():
        log_dir = _log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        logfile = log_dir / f"{runtime}-{timestamp}.log"

        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    _LOGGERS[cache_key] = logger

    return logger
