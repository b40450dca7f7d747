"""Reading, writing and merging the JSONL hashes file."""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from hashgate.schema import STAGING_SUFFIX, AuditEntry

logger = logging.getLogger("hashgate.audit")


class AuditFileError(RuntimeError):
    """The hashes file exists but cannot be read, parsed or written."""


def load_audit_file(path: str | os.PathLike[str]) -> dict[str, str] | None:
    """Load a hashes file into a ``filename -> hash`` mapping.

    An empty path means no hashes file was configured and returns ``None``. A
    missing file is created empty. Unreadable or malformed files raise
    :class:`AuditFileError`.
    """
    if not os.fspath(path):
        return None

    audit_path = Path(path)
    if not audit_path.exists():
        logger.warning("Hashes file '%s' does not exist, creating empty file", path)
        try:
            audit_path.touch()
        except OSError as exc:
            raise AuditFileError(f"Error creating hashes file {path}: {exc}") from exc
        return {}

    audit_map: dict[str, str] = {}
    try:
        with audit_path.open("r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = AuditEntry.model_validate_json(line)
                except ValidationError as exc:
                    raise AuditFileError(
                        f"Error reading hashes file {path} at line {line_number}: "
                        f"{exc.errors()[0]['msg']}"
                    ) from exc
                audit_map[entry.filename] = entry.hash
    except (OSError, UnicodeDecodeError) as exc:
        raise AuditFileError(f"Error opening hashes file {path}: {exc}") from exc

    logger.debug("Loaded %d hash(es) from %s", len(audit_map), path)
    return audit_map


def format_entry(filename: str, file_hash: str) -> str:
    """Return one JSONL record for the hashes file."""
    return json.dumps({"filename": filename, "hash": file_hash}) + "\n"


def _file_mode(path: Path) -> int:
    """Return the permission bits a rewritten ``path`` should carry."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_audit_file(path: str | os.PathLike[str], hashes: Mapping[str, str]) -> None:
    """Atomically replace ``path`` with ``hashes``, sorted by filename."""
    audit_path = Path(path)
    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=audit_path.parent,
            prefix=f"{audit_path.name}-",
            suffix=".tmp",
            delete=False,
        ) as tmp_file:
            temp_path = Path(tmp_file.name)
            for filename in sorted(hashes):
                tmp_file.write(format_entry(filename, hashes[filename]))
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.chmod(temp_path, _file_mode(audit_path))
        os.replace(temp_path, audit_path)
        temp_path = None
    except OSError as exc:
        raise AuditFileError(f"Error writing hashes file {path}: {exc}") from exc
    finally:
        if temp_path and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass


def merge_hash_files(path: str | os.PathLike[str]) -> int:
    """Fold ``<path>.new`` into ``path`` and delete the staging file.

    Staging entries replace existing entries with the same filename. Returns the
    number of staged entries merged.
    """
    staging_path = Path(os.fspath(path) + STAGING_SUFFIX)
    if not staging_path.exists():
        logger.debug("No staging file %s to merge", staging_path)
        return 0

    staged = load_audit_file(staging_path) or {}
    if not staged:
        logger.debug("Removing empty staging file %s", staging_path)
        staging_path.unlink(missing_ok=True)
        return 0

    existing = load_audit_file(path) or {}
    merged = {**existing, **staged}
    write_audit_file(path, merged)
    staging_path.unlink(missing_ok=True)

    logger.info(
        "Merged %d staged hash(es) into %s (%d total)",
        len(staged),
        path,
        len(merged),
    )
    return len(staged)
