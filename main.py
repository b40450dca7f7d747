#!/usr/bin/env python3
"""Command-line entry point for hashgate.

Runs a command against files whose content hash changed since the last
recorded run and prints one JSON line per file to stdout.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import TextIO

import typer
from typing_extensions import Annotated

from hashgate.audit_store import AuditFileError, load_audit_file, merge_hash_files
from hashgate.config_utils import ConfigError, build_run_config, load_config
from hashgate.logging_utils import configure_logging
from hashgate.pipeline import process_files

app = typer.Typer(add_completion=False)
logger = logging.getLogger("hashgate.cli")

EPILOG = (
    "Examples:\n\n"
    '  hashgate -c "ruff check" src/*.py\n\n'
    '  hashgate -a -u -f hashes.jsonl -c "mycheck" *.txt\n\n'
    '  find . -name "*.go" | hashgate -c "gofmt -l" -p\n\n'
    '  hashgate -c "diff $FILE expected.txt" test_files/*'
)


def read_file_list(stream: TextIO) -> list[str]:
    """Read one filename per line, ignoring blank lines."""
    return [line.strip() for line in stream if line.strip()]


def _resolve_files(files: list[str] | None) -> list[str]:
    if files:
        return list(files)
    if sys.stdin is None or sys.stdin.isatty():
        return []
    return read_file_list(sys.stdin)


@app.command(epilog=EPILOG)
def main(
    files: Annotated[
        list[str] | None,
        typer.Argument(
            help="Files to process. Read from stdin, one per line, when omitted.",
            show_default=False,
        ),
    ] = None,
    check_command: Annotated[
        str,
        typer.Option(
            "--check-command",
            "-c",
            help="Command to run on each file. Use $FILE to place the filename.",
            rich_help_panel="Command",
        ),
    ] = "",
    audit: Annotated[
        bool,
        typer.Option(
            "--audit",
            "-a",
            help="Only run the command on files whose recorded hash changed.",
            rich_help_panel="Hashes",
        ),
    ] = False,
    hashes_file: Annotated[
        str,
        typer.Option(
            "--hashes-file",
            "-f",
            help="JSONL file with known hashes.",
            rich_help_panel="Hashes",
        ),
    ] = "",
    update: Annotated[
        bool,
        typer.Option(
            "--update",
            "-u",
            help="Record hashes of files whose command exited 0.",
            rich_help_panel="Hashes",
        ),
    ] = False,
    success_exit_codes: Annotated[
        str,
        typer.Option(
            help="Comma-separated success exit codes to include in output.",
            rich_help_panel="Filtering",
        ),
    ] = "",
    error_exit_codes: Annotated[
        str,
        typer.Option(
            help="Comma-separated error exit codes to include in output.",
            rich_help_panel="Filtering",
        ),
    ] = "",
    workers: Annotated[
        int,
        typer.Option(
            "--workers",
            "-w",
            help="Number of concurrent workers (0 uses the CPU count).",
            rich_help_panel="Processing",
        ),
    ] = 0,
    progress: Annotated[
        bool,
        typer.Option("--progress", "-p", help="Show a progress line on stderr."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="No per-file error output; suppresses stdout when -f is given.",
        ),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(help="YAML file with default settings.", show_default=False),
    ] = None,
    debug: Annotated[bool, typer.Option(help="Enable debug logging.")] = False,
) -> None:
    """Run a command on files and track their hashes across runs."""
    if debug:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.ERROR
    else:
        log_level = logging.WARNING
    configure_logging(level=log_level, force=True)

    try:
        run_config = build_run_config(
            load_config(config),
            command=check_command or None,
            hashes_file=hashes_file or None,
            audit=True if audit else None,
            update=True if update else None,
            success_exit_codes=success_exit_codes or None,
            error_exit_codes=error_exit_codes or None,
            workers=workers or None,
            progress=True if progress else None,
            quiet=True if quiet else None,
        )
    except ConfigError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc

    if run_config.quiet and not quiet and not debug:
        configure_logging(level=logging.ERROR)

    file_list = _resolve_files(files)
    if not file_list and not run_config.hashes_file:
        logger.error("No files to process")
        raise typer.Exit(code=1)

    try:
        audit_map = load_audit_file(run_config.hashes_file)
    except AuditFileError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc

    if not file_list and audit_map:
        file_list = sorted(audit_map)
        logger.info("No files given; checking %d recorded file(s)", len(file_list))

    if run_config.quiet and run_config.hashes_file:
        with open(os.devnull, "w", encoding="utf-8") as discard:
            process_files(file_list, run_config, audit_map, discard)
    else:
        process_files(file_list, run_config, audit_map, sys.stdout)

    if run_config.update:
        try:
            merge_hash_files(run_config.hashes_file)
        except AuditFileError as exc:
            logger.error("%s", exc)
            raise typer.Exit(code=1) from exc


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
