"""
GroundCheck Error Kinds
========================

Every failure a validation run can hit maps to one of these classes.
Only LoggingError is ever suppressed (by the audit log itself); all the
others propagate and abort the enclosing stage and the validate call.
"""

from __future__ import annotations


class GroundCheckError(Exception):
    """Base class for all GroundCheck errors."""


class RetrievalError(GroundCheckError):
    """The passage source failed to answer a grounding query."""


class TransportError(GroundCheckError):
    """A model call failed (connection, HTTP status, timeout)."""

    def __init__(self, message: str, model: str | None = None):
        super().__init__(message)
        self.model = model


class ParseError(GroundCheckError):
    """A model response did not contain the expected structured payload."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw


class AlignmentError(ParseError):
    """A judge returned a different number of verdicts than claims."""

    def __init__(self, expected: int, actual: int, raw: str | None = None):
        super().__init__(
            f"Expected {expected} verdicts (one per claim), got {actual}",
            raw=raw,
        )
        self.expected = expected
        self.actual = actual


class LoggingError(GroundCheckError):
    """The audit log sink could not be written."""
