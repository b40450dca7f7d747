from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Sentinel returned when a command was killed by a signal or could not start.
COMMAND_FAILED_EXIT_CODE = -1

# Substituted with the quoted file path inside a command template.
FILE_PLACEHOLDER = "$FILE"

STAGING_SUFFIX = ".new"


def default_worker_count() -> int:
    return os.cpu_count() or 1


class RunConfig(BaseModel):
    """Immutable settings for a single pipeline run."""

    model_config = ConfigDict(frozen=True)

    command: str = ""
    hashes_file: str = ""
    audit: bool = False
    update: bool = False
    success_codes: frozenset[int] = Field(default_factory=frozenset)
    error_codes: frozenset[int] = Field(default_factory=frozenset)
    workers: int = Field(default_factory=default_worker_count, gt=0)
    show_progress: bool = False
    quiet: bool = False

    @property
    def filter_enabled(self) -> bool:
        return bool(self.success_codes or self.error_codes)

    @property
    def staging_file(self) -> str:
        return self.hashes_file + STAGING_SUFFIX if self.hashes_file else ""


class AuditEntry(BaseModel):
    """A single ``{filename, hash}`` record of the audit store."""

    filename: str
    hash: str

    @field_validator("filename")
    @classmethod
    def _require_filename(cls, value: str) -> str:
        if not value:
            raise ValueError("Audit entries must include a filename.")
        return value


class Result(BaseModel):
    """Outcome of processing one file, streamed to the output sink."""

    filename: str
    hash: str
    exit_code: int = 0
    audited: bool = False
    changed: bool = False

    def as_record(self) -> dict[str, object]:
        """Return the output record, leaving out audit flags that are false."""
        record: dict[str, object] = {
            "filename": self.filename,
            "hash": self.hash,
            "exit_code": self.exit_code,
        }
        if self.audited:
            record["audited"] = True
        if self.changed:
            record["changed"] = True
        return record
