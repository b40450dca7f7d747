from __future__ import annotations

import logging
from collections.abc import Mapping

from hashgate.classifier import ExitCodeFilter
from hashgate.command_runner import run_command
from hashgate.hasher import HashingError, hash_file
from hashgate.schema import Result, RunConfig

logger = logging.getLogger("hashgate.processor")


def process_file(
    filename: str, config: RunConfig, audit_map: Mapping[str, str] | None
) -> Result | None:
    """Hash ``filename``, check it against the audit map and run the command.

    Returns ``None`` when the file cannot be hashed or when exit-code filtering
    drops the result. In audit mode only files recorded in ``audit_map`` with a
    different hash are treated as changed; files missing from the map never
    trigger the command.
    """
    try:
        file_hash = hash_file(filename)
    except HashingError as exc:
        if not config.quiet:
            logger.error("Error hashing %s: %s", filename, exc.cause)
        return None

    result = Result(filename=filename, hash=file_hash)

    if audit_map is not None and filename in audit_map:
        result.audited = True
        result.changed = file_hash != audit_map[filename]

    if not config.command or (config.audit and not result.changed):
        return result

    result.exit_code = run_command(config, filename)

    exit_filter = ExitCodeFilter.from_config(config)
    if exit_filter.keep(result.exit_code):
        return result

    if exit_filter.needs_failure_hint(result.exit_code) and not config.quiet:
        logger.warning(
            "Command failed to run with exit code -1 for %s. If expected, add -1 "
            "to the error exit codes with --error-exit-codes",
            filename,
        )
    logger.debug(
        "Dropping %s: exit code %d is not a configured success or error code",
        filename,
        result.exit_code,
    )
    return None
