from __future__ import annotations

import logging
import shlex
import subprocess
import sys
import threading

from hashgate.schema import COMMAND_FAILED_EXIT_CODE, FILE_PLACEHOLDER, RunConfig

logger = logging.getLogger("hashgate.command")

# Commands that take no file argument; the path is never appended to these.
STANDALONE_COMMANDS = ("exit", "true", "false")
OUTPUT_CHUNK_SIZE = 64 * 1024

_forward_lock = threading.Lock()


def _is_standalone(command: str) -> bool:
    return any(
        command == verb or command.startswith(f"{verb} ")
        for verb in STANDALONE_COMMANDS
    )


def build_command(template: str, path: str) -> str:
    """Return the shell command line for ``path``."""
    quoted = shlex.quote(path)
    if FILE_PLACEHOLDER in template:
        return template.replace(FILE_PLACEHOLDER, quoted)
    if _is_standalone(template):
        return template
    return f"{template} {quoted}"


def _forward_output(chunk: bytes) -> None:
    """Copy raw command output to stderr without re-encoding it."""
    if not chunk:
        return
    with _forward_lock:
        sys.stderr.flush()
        sink = sys.stderr.buffer
        sink.write(chunk)
        sink.flush()


def run_command(config: RunConfig, path: str) -> int:
    """Run the configured command for ``path`` and return its exit code.

    Output of the command is streamed to stderr as it arrives so stdout stays
    reserved for results. Returns ``COMMAND_FAILED_EXIT_CODE`` when the shell
    could not be started or the command was terminated by a signal.
    """
    command = build_command(config.command, path)
    logger.debug("Running %s", command)

    try:
        process = subprocess.Popen(
            ["sh", "-c", command],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as exc:
        if not config.quiet:
            logger.error("Error running command for %s: %s", path, exc)
        return COMMAND_FAILED_EXIT_CODE

    with process:
        for chunk in iter(lambda: process.stdout.read1(OUTPUT_CHUNK_SIZE), b""):
            _forward_output(chunk)
    returncode = process.returncode

    if returncode < 0:
        if not config.quiet:
            logger.error(
                "Command for %s was terminated by signal %d",
                path,
                -returncode,
            )
        return COMMAND_FAILED_EXIT_CODE

    return returncode
