"""
Structured Response Parser
===========================

Extracts a schema-validated payload from a model completion that is
expected to hold a JSON object, optionally wrapped in a markdown fence:

    ```json
    {"verdicts": [{"verdict": "yes"}]}
    ```

Decoding is two explicit stages, each returning a ParseResult, composed
with short-circuiting:

    strip_fence(text)            → ParseResult[str]
    decode_payload(text, schema) → ParseResult[schema]

Stages never raise. The judge that asked for the payload calls
`unwrap()`, which turns a failure into ParseError at its own boundary.
A failed parse is fatal for that stage; it is never turned into a
default verdict or score.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from groundcheck.errors import ParseError

T = TypeVar("T")
U = TypeVar("U")
M = TypeVar("M", bound=BaseModel)

FENCE = "```"


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Success/failure outcome of one decode stage."""
    value: Optional[T] = None
    error: Optional[str] = None
    raw: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, raw: Optional[str] = None) -> "ParseResult[T]":
        return cls(value=value, raw=raw)

    @classmethod
    def failure(cls, error: str, raw: Optional[str] = None) -> "ParseResult[T]":
        return cls(error=error, raw=raw)

    def then(self, step: Callable[[T], "ParseResult[U]"]) -> "ParseResult[U]":
        """Run the next stage only if this one succeeded."""
        if not self.ok:
            return ParseResult.failure(self.error, raw=self.raw)
        result = step(self.value)
        if result.raw is None:
            return ParseResult(value=result.value, error=result.error, raw=self.raw)
        return result

    def unwrap(self) -> T:
        """Return the value or raise ParseError."""
        if not self.ok:
            raise ParseError(self.error, raw=self.raw)
        return self.value


def strip_fence(text: str) -> ParseResult[str]:
    """
    Remove a surrounding markdown code fence.

    An opening fence line (```` ``` ```` or ```` ```json ````) requires a
    closing fence line. A lone trailing fence line is dropped. Unfenced
    text is returned stripped of surrounding whitespace.
    """
    stripped = text.strip()
    if not stripped:
        return ParseResult.failure("Empty model response", raw=text)

    lines = stripped.split("\n")
    if lines[0].strip().startswith(FENCE):
        if len(lines) < 2 or lines[-1].strip() != FENCE:
            return ParseResult.failure("Code fence opened but never closed", raw=text)
        return ParseResult.success("\n".join(lines[1:-1]).strip(), raw=text)

    if lines[-1].strip() == FENCE:
        return ParseResult.success("\n".join(lines[:-1]).strip(), raw=text)

    return ParseResult.success(stripped, raw=text)


def decode_payload(text: str, schema: type[M]) -> ParseResult[M]:
    """Decode `text` as JSON and validate it against `schema`."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return ParseResult.failure(f"Invalid JSON payload: {e.msg} (line {e.lineno}, col {e.colno})")

    try:
        return ParseResult.success(schema.model_validate(data))
    except ValidationError as e:
        return ParseResult.failure(
            f"Payload does not match {schema.__name__}: {e.error_count()} validation error(s)"
        )


def parse_response(text: str, schema: type[M]) -> ParseResult[M]:
    """Fence-strip then decode; stops at the first failing stage."""
    return strip_fence(text).then(lambda body: decode_payload(body, schema))
