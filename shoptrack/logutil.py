"""
Logging setup for ShopTrack Lite.

Console output plus a timestamped log file, which is the only practical
way to see what happened on an Android device after the fact.
"""

import logging
import os
import sys
from datetime import datetime

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVEL_ENV = "SHOPTRACK_LOG_LEVEL"

LOG_DIR = None  # set by setup_logging()
_initialised = False


def _default_log_dir():
    from shoptrack.config import storage_dir

    return storage_dir("logs")


def _resolve_level(level):
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "DEBUG")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        return resolved if isinstance(resolved, int) else logging.DEBUG
    return level


def setup_logging(log_dir=None, level=None):
    """
    Configure the root logger once: console at INFO, file at ``level``.

    The file handler is best-effort; without storage permission on
    Android the app still starts with console logging only.
    """
    global _initialised, LOG_DIR
    if _initialised:
        return
    _initialised = True

    file_level = _resolve_level(level)
    root = logging.getLogger()
    root.setLevel(min(file_level, logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(formatter)
    root.addHandler(console)

    LOG_DIR = log_dir or _default_log_dir()
    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(LOG_DIR, f"shoptrack_{stamp}.log")
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)
        logging.getLogger("shoptrack").info("Logging to %s", log_file)
    except OSError as e:
        logging.getLogger("shoptrack").warning(
            "File logging unavailable (%s), console only", e)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``shoptrack`` namespace."""
    return logging.getLogger(f"shoptrack.{name}")
