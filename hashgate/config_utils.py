"""Helpers for resolving run settings from flags and the optional config file."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from hashgate.schema import RunConfig, default_worker_count

logger = logging.getLogger("hashgate.config")

CONFIG_PATH = Path("hashgate.yaml")
CONFIG_ENV_VAR = "HASHGATE_CONFIG"

CONFIG_KEYS = {
    "command",
    "hashes_file",
    "audit",
    "update",
    "success_exit_codes",
    "error_exit_codes",
    "workers",
    "progress",
    "quiet",
}


class ConfigError(ValueError):
    """Invalid or inconsistent run settings."""


def parse_exit_codes(value: str | None) -> frozenset[int]:
    """Parse a comma-separated list of exit codes, skipping invalid entries."""
    if not value:
        return frozenset()

    codes: set[int] = set()
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            codes.add(int(part))
        except ValueError:
            logger.warning("Invalid exit code '%s'", part)
    return frozenset(codes)


def _coerce_exit_codes(value: Any) -> frozenset[int]:
    if value is None:
        return frozenset()
    if isinstance(value, int) and not isinstance(value, bool):
        return frozenset({value})
    if isinstance(value, str):
        return parse_exit_codes(value)
    if isinstance(value, (list, tuple, set)):
        return parse_exit_codes(",".join(str(item) for item in value))
    raise ConfigError(f"Exit codes must be a list or comma-separated string: {value!r}")


def resolve_worker_count(requested: Any) -> int:
    """Return ``requested`` or the CPU count when it is missing or not positive."""
    if requested is None:
        return default_worker_count()
    try:
        count = int(requested)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Worker count must be an integer: {requested!r}") from exc
    if count <= 0:
        return default_worker_count()
    return count


def load_config(path: Path | str | None = None) -> dict[str, Any]:
    """Load the YAML defaults file.

    Without an explicit path, ``HASHGATE_CONFIG`` or ``hashgate.yaml`` in the
    working directory is used when present. An explicit path must exist.
    """
    explicit = path is not None
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR) or CONFIG_PATH
    config_path = Path(path)

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        return {}

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Config file {config_path} must contain a mapping.")

    unknown = sorted(set(data) - CONFIG_KEYS)
    if unknown:
        raise ConfigError(
            f"Unknown key(s) in {config_path}: {', '.join(map(str, unknown))}"
        )
    logger.debug("Loaded defaults from %s", config_path)
    return dict(data)


def build_run_config(
    defaults: Mapping[str, Any] | None = None, **overrides: Any
) -> RunConfig:
    """Combine file defaults with command-line overrides into a RunConfig.

    Overrides that are ``None`` leave the file value in place.
    """
    settings = dict(defaults or {})
    settings.update(
        {key: value for key, value in overrides.items() if value is not None}
    )

    command = str(settings.get("command") or "")
    hashes_file = str(settings.get("hashes_file") or "")
    audit = bool(settings.get("audit", False))
    update = bool(settings.get("update", False))

    if not command and not audit:
        raise ConfigError("Either command (-c) or audit mode (--audit) is required")
    if audit and not hashes_file:
        raise ConfigError("Audit mode requires -f (hashes file) to be specified")
    if update and not hashes_file:
        raise ConfigError("Update mode requires -f (hashes file) to be specified")

    try:
        return RunConfig(
            command=command,
            hashes_file=hashes_file,
            audit=audit,
            update=update,
            success_codes=_coerce_exit_codes(settings.get("success_exit_codes")),
            error_codes=_coerce_exit_codes(settings.get("error_exit_codes")),
            workers=resolve_worker_count(settings.get("workers")),
            show_progress=bool(settings.get("progress", False)),
            quiet=bool(settings.get("quiet", False)),
        )
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
