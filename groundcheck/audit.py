"""
Audit Log
==========

Append-only record of everything a validate call did: each prompt sent,
each raw response received, stage timings, and the final report.

Sinks implement `append(record)`:
    - FileAuditLog:     JSON Lines file, one write() per record
    - InMemoryAuditLog: list of records (tests)
    - NullAuditLog:     discards everything (audit disabled)

Appends are fire-and-forget. A failed write is reported on the
`groundcheck.audit` logger and otherwise ignored; it never aborts a
validation. No locking is done: concurrent validate calls may
interleave whole lines in any order.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Protocol

from groundcheck.errors import LoggingError
from groundcheck.schemas.audit import AuditKind, AuditRecord

logger = logging.getLogger("groundcheck.audit")


class AuditLog(Protocol):
    def append(self, record: AuditRecord) -> None:
        ...


class FileAuditLog:
    """
    JSON Lines audit sink.

    Args:
        path: File to append to (created on first write).
    """

    def __init__(self, path: str | Path = "validate.log"):
        self.path = Path(path)

    def _write(self, line: str) -> None:
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise LoggingError(f"Failed to write to file {self.path}: {e}") from e

    def append(self, record: AuditRecord) -> None:
        try:
            self._write(record.to_line())
        except LoggingError as e:
            logger.warning(str(e))


class InMemoryAuditLog:
    """Audit sink that keeps records in memory."""

    def __init__(self):
        self.records: list[AuditRecord] = []

    def append(self, record: AuditRecord) -> None:
        self.records.append(record)

    @property
    def lines(self) -> list[str]:
        return [r.to_line() for r in self.records]

    def of_kind(self, kind: AuditKind) -> list[AuditRecord]:
        return [r for r in self.records if r.kind == kind]

    def for_stage(self, stage: str) -> list[AuditRecord]:
        return [r for r in self.records if r.kind == AuditKind.STAGE and r.stage == stage]


class NullAuditLog:
    """Audit sink that discards records."""

    def append(self, record: AuditRecord) -> None:
        return None


class AuditTrail:
    """
    Audit writer bound to one validate call.

    Usage:
        trail = AuditTrail(sink, run_id)
        trail.stage("entailment", prompt, response, elapsed_ms)
    """

    def __init__(self, sink: AuditLog, run_id: str):
        self.sink = sink
        self.run_id = run_id

    def _emit(self, kind: AuditKind, **fields: Any) -> None:
        self.sink.append(AuditRecord(run_id=self.run_id, kind=kind, **fields))

    def start(self, payload: Optional[dict[str, Any]] = None) -> None:
        self._emit(AuditKind.VALIDATION_START, payload=payload)

    def stage(self, stage: str, prompt: str, response: str, elapsed_ms: float) -> None:
        self._emit(
            AuditKind.STAGE,
            stage=stage,
            prompt=prompt,
            response=response,
            elapsed_ms=round(elapsed_ms, 3),
        )

    def report(self, payload: dict[str, Any]) -> None:
        self._emit(AuditKind.REPORT, payload=payload)

    def failure(self, stage: str, error: BaseException) -> None:
        self._emit(
            AuditKind.FAILURE,
            stage=stage,
            payload={"error": type(error).__name__, "message": str(error)},
        )

    def end(self, elapsed_ms: float) -> None:
        self._emit(AuditKind.VALIDATION_END, elapsed_ms=round(elapsed_ms, 3))
