"""Threaded pipeline: hash workers feeding a single result writer."""

from __future__ import annotations

import json
import logging
import queue
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from hashgate.audit_store import format_entry
from hashgate.processor import process_file
from hashgate.progress import ProgressReporter
from hashgate.schema import Result, RunConfig

LOGGER_NAME = "hashgate.pipeline"
pipeline_logger = logging.getLogger(LOGGER_NAME)
worker_logger = logging.getLogger(f"{LOGGER_NAME}.worker")
writer_logger = logging.getLogger(f"{LOGGER_NAME}.writer")


class PipelineState(str, Enum):
    """Lifecycle of a single run."""

    IDLE = "idle"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class PipelineSummary:
    processed: int
    changed: int
    errored: int
    written: int
    staged: int
    elapsed: float


def _enter(state: PipelineState) -> None:
    pipeline_logger.debug("Pipeline state: %s", state.value)


class _ResultWriter:
    """Drains results to the output stream and, in update mode, the staging file."""

    def __init__(self, results: queue.Queue, output: TextIO, config: RunConfig) -> None:
        self.results = results
        self.output = output
        self.config = config
        self.written = 0
        self.staged = 0

    def _open_staging(self) -> TextIO | None:
        if not (self.config.update and self.config.hashes_file):
            return None
        try:
            return open(self.config.staging_file, "w", encoding="utf-8")
        except OSError as exc:
            if not self.config.quiet:
                writer_logger.error("Error creating .new file: %s", exc)
            return None

    def run(self) -> None:
        staging = self._open_staging()
        try:
            while True:
                result: Result | None = self.results.get()
                if result is None:
                    break
                self._write(result, staging)
        finally:
            if staging is not None:
                staging.close()
            self.output.flush()

    def _write(self, result: Result, staging: TextIO | None) -> None:
        try:
            self.output.write(json.dumps(result.as_record()) + "\n")
            self.written += 1
        except (OSError, ValueError) as exc:
            if not self.config.quiet:
                writer_logger.error("Error encoding result: %s", exc)

        if staging is None or result.exit_code != 0:
            return
        try:
            staging.write(format_entry(result.filename, result.hash))
            self.staged += 1
        except OSError as exc:
            if not self.config.quiet:
                writer_logger.error("Error writing to .new file: %s", exc)


def _worker(
    worker_id: int,
    jobs: queue.Queue,
    results: queue.Queue,
    config: RunConfig,
    audit_map: Mapping[str, str] | None,
    progress: ProgressReporter,
) -> None:
    log = worker_logger.getChild(str(worker_id))
    log.debug("Worker %d started", worker_id)
    while True:
        filename = jobs.get()
        if filename is None:  # Poison pill
            break
        try:
            result = process_file(filename, config, audit_map)
        except Exception:
            log.exception("Unexpected error while processing %s", filename)
            result = None

        progress.update(
            changed=result is not None and result.changed,
            errored=result is None,
        )
        if result is not None:
            results.put(result)
    log.debug("Worker %d stopped", worker_id)


def process_files(
    files: Sequence[str],
    config: RunConfig,
    audit_map: Mapping[str, str] | None,
    output: TextIO,
    *,
    progress: ProgressReporter | None = None,
) -> PipelineSummary:
    """Process ``files`` concurrently and stream results to ``output``.

    Results are written in completion order. In update mode the hashes of
    results with exit code 0 are appended to ``<hashes_file>.new``; merging
    that file is left to the caller.
    """
    _enter(PipelineState.IDLE)
    progress = progress or ProgressReporter(
        len(files), config.show_progress, config.quiet
    )
    worker_count = config.workers

    jobs: queue.Queue = queue.Queue(maxsize=len(files) + worker_count)
    results: queue.Queue = queue.Queue()

    _enter(PipelineState.DISPATCHING)
    pipeline_logger.debug(
        "Queueing %d file(s) for %d worker(s)", len(files), worker_count
    )
    for filename in files:
        jobs.put(filename)
    for _ in range(worker_count):
        jobs.put(None)

    writer = _ResultWriter(results, output, config)
    writer_thread = threading.Thread(target=writer.run, name="ResultWriter")
    writer_thread.start()

    threads = []
    for i in range(worker_count):
        thread = threading.Thread(
            target=_worker,
            args=(i, jobs, results, config, audit_map, progress),
            name=f"HashWorker-{i}",
        )
        thread.start()
        threads.append(thread)

    for thread in threads:
        thread.join()

    _enter(PipelineState.DRAINING)
    results.put(None)
    writer_thread.join()

    _enter(PipelineState.FINALIZING)
    snapshot = progress.finish()

    _enter(PipelineState.DONE)
    pipeline_logger.info(
        "Processed %d file(s) in %.2f seconds (%d changed, %d errored, %d written)",
        snapshot.processed,
        snapshot.elapsed,
        snapshot.changed,
        snapshot.errored,
        writer.written,
    )
    return PipelineSummary(
        processed=snapshot.processed,
        changed=snapshot.changed,
        errored=snapshot.errored,
        written=writer.written,
        staged=writer.staged,
        elapsed=snapshot.elapsed,
    )
