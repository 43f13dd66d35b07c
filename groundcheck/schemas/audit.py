"""
Audit Record Schema
====================

One line of the append-only audit log. Every remote prompt/response
pair, every report, and the start/end of each validate call is
rendered as an AuditRecord and appended as a single JSON line.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuditKind(str, Enum):
    VALIDATION_START = "validation_start"
    STAGE = "stage"
    REPORT = "report"
    VALIDATION_END = "validation_end"
    FAILURE = "failure"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditRecord(BaseModel):
    """
    A single audit log entry.

    Stage records carry the exact prompt sent and raw response received
    so a report can be re-derived by hand from the log alone.
    """
    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(default_factory=_utc_now)
    run_id: str
    kind: AuditKind
    stage: Optional[str] = None
    prompt: Optional[str] = None
    response: Optional[str] = None
    elapsed_ms: Optional[float] = None
    payload: Optional[dict[str, Any]] = None

    def to_line(self) -> str:
        """Render as one JSON line (no trailing newline)."""
        return self.model_dump_json(exclude_none=True)
