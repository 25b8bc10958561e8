"""
log_setup.py

Logging setup for the viewer.

Console output always goes to stderr; pass ``log_file`` to also keep a
persistent trace (overlay fetches, dataset loading, icon failures, ...).
"""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
LOG_NAMESPACE = "starchart"


def coerce_level(value: Union[str, int, None], default: int = logging.WARNING) -> int:
    """Return a valid logging level from a name or number, or ``default``."""
    if value is None:
        return default
    if isinstance(value, int):
        return value
    candidate = getattr(logging, str(value).upper(), None)
    if isinstance(candidate, int):
        return candidate
    logging.getLogger(LOG_NAMESPACE).warning(
        "Logging level %r is invalid; defaulting to %s", value, logging.getLevelName(default)
    )
    return default


def configure_logging(level: Union[str, int, None] = None, log_file: Optional[Union[str, Path]] = None) -> int:
    """Install root handlers; returns the effective level."""
    resolved = coerce_level(level)
    handlers = [logging.StreamHandler()]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    logging.basicConfig(level=resolved, format=LOG_FORMAT, handlers=handlers, force=True)
    logging.getLogger(LOG_NAMESPACE).setLevel(resolved)
    # keep HTTP client chatter out of the console unless debugging
    logging.getLogger("urllib3").setLevel(max(resolved, logging.WARNING))
    return resolved
