"""Exit-code filtering for command results."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

from hashgate.schema import COMMAND_FAILED_EXIT_CODE, RunConfig


def should_keep(
    exit_code: int,
    success_codes: Collection[int],
    error_codes: Collection[int],
    filter_enabled: bool,
) -> bool:
    """Return True when a result with ``exit_code`` belongs in the output.

    With filtering disabled every result is kept. Otherwise the code must be
    listed as a success or an error code; ``-1`` gets no special treatment.
    """
    if not filter_enabled:
        return True
    return exit_code in success_codes or exit_code in error_codes


@dataclass(frozen=True)
class ExitCodeFilter:
    success_codes: frozenset[int]
    error_codes: frozenset[int]
    enabled: bool

    @classmethod
    def from_config(cls, config: RunConfig) -> ExitCodeFilter:
        return cls(
            success_codes=config.success_codes,
            error_codes=config.error_codes,
            enabled=config.filter_enabled,
        )

    def keep(self, exit_code: int) -> bool:
        return should_keep(
            exit_code, self.success_codes, self.error_codes, self.enabled
        )

    def needs_failure_hint(self, exit_code: int) -> bool:
        """True when a dropped ``-1`` result should suggest --error-exit-codes."""
        return (
            exit_code == COMMAND_FAILED_EXIT_CODE
            and self.enabled
            and COMMAND_FAILED_EXIT_CODE not in self.error_codes
            and not self.keep(exit_code)
        )
