"""Logging setup shared by the hashgate CLI and its helpers."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

DEFAULT_FORMAT = "%(levelname)s | %(name)s | %(message)s"
_CONFIGURED = False


def _resolve_level(level: int | str | None) -> int:
    """Resolve a logging level from an int, string, or HASHGATE_LOG_LEVEL."""
    if isinstance(level, int):
        return level
    for candidate in (level, os.getenv("HASHGATE_LOG_LEVEL", "WARNING")):
        if isinstance(candidate, str):
            resolved = logging.getLevelName(candidate.upper())
            if isinstance(resolved, int):
                return resolved
    return logging.WARNING


def configure_logging(
    level: int | str | None = None,
    *,
    log_file: str | os.PathLike[str] | None = None,
    force: bool = False,
) -> None:
    """Route log records to stderr, and to a file when one is configured.

    Stdout is reserved for the result stream, so the console handler always
    writes to stderr. ``log_file`` defaults to HASHGATE_LOG_FILE; no file
    handler is attached when neither is set. Once configured, later calls
    without ``force`` only adjust the root level.
    """
    global _CONFIGURED

    resolved_level = _resolve_level(level)
    if _CONFIGURED and not force:
        logging.getLogger().setLevel(resolved_level)
        return

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is None:
        log_file = os.getenv("HASHGATE_LOG_FILE", "")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=resolved_level,
        format=os.getenv("HASHGATE_LOG_FORMAT", DEFAULT_FORMAT),
        handlers=handlers,
        force=True,
    )
    _CONFIGURED = True


__all__ = ["configure_logging"]
