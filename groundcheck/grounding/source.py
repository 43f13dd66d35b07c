"""
Passage Sources
================

The verification engine reads grounding passages through the
`PassageSource` protocol and never writes to it. The vector store
client itself lives outside this package; the sources here are a
row-oriented in-memory store (tests, small corpora) and a loader for
JSON Lines exports of the chunks table.

Filter expressions follow the SQL-ish form the chunks table accepts,
restricted to equality clauses joined by AND:

    subject_id = 10000032
    subject_id = 10000032 AND source = 'discharge'
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Protocol

from groundcheck.errors import RetrievalError
from groundcheck.schemas.passage import GroundingPassage

logger = logging.getLogger("groundcheck.grounding.source")

_CLAUSE_REGEX = re.compile(r"^\s*([A-Za-z_][\w.]*)\s*=\s*(.+?)\s*$")
_AND_REGEX = re.compile(r"\s+AND\s+", re.IGNORECASE)


class PassageSource(Protocol):
    """Read-only grounding query interface."""

    def query(self, where: Optional[str] = None, limit: int = 10) -> list[GroundingPassage]:
        ...


def parse_filter(where: Optional[str]) -> list[tuple[str, str]]:
    """
    Parse an equality filter into (field, value) clauses.

    Quoted values have their quotes removed. Values are compared as
    strings, so `subject_id = 10000032` matches an integer column.

    Raises:
        RetrievalError: If a clause is not of the form `field = value`.
    """
    if where is None or not where.strip():
        return []

    clauses: list[tuple[str, str]] = []
    for part in _AND_REGEX.split(where.strip()):
        match = _CLAUSE_REGEX.match(part)
        if not match:
            raise RetrievalError(f"Unsupported filter clause: {part!r}")
        field, value = match.group(1), match.group(2)
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        clauses.append((field, value))
    return clauses


def _lookup(row: dict[str, Any], field: str) -> Any:
    """Resolve a dotted field name (`metadata.subject_id`) against a row."""
    value: Any = row
    for key in field.split("."):
        if not isinstance(value, dict) or key not in value:
            return None
        value = value[key]
    return value


class InMemoryPassageSource:
    """
    Row store answering grounding queries in insertion order.

    Rows are kept raw (as the chunks table returns them) and converted
    to GroundingPassage at query time, so filters can address any
    column, including ones that are later dropped.

    Usage:
        source = InMemoryPassageSource(text_field="full_text")
        source.add_many(rows)
        passages = source.query("subject_id = 10000032", limit=10)

    Args:
        id_field: Row field holding the passage id.
        text_field: Row field holding the grounding text.
    """

    def __init__(self, id_field: str = "id", text_field: str = "full_text"):
        self.id_field = id_field
        self.text_field = text_field
        self._rows: list[dict[str, Any]] = []

    def add(self, row: dict[str, Any]) -> None:
        """Add a row to the store."""
        self._rows.append(dict(row))

    def add_many(self, rows: list[dict[str, Any]]) -> None:
        """Add multiple rows to the store."""
        for row in rows:
            self.add(row)

    @property
    def size(self) -> int:
        """Number of rows in the store."""
        return len(self._rows)

    def query(self, where: Optional[str] = None, limit: int = 10) -> list[GroundingPassage]:
        """
        Return up to `limit` passages matching `where`, in store order.

        Raises:
            RetrievalError: On a malformed filter or a row missing the
                id/text fields.
        """
        clauses = parse_filter(where)
        passages: list[GroundingPassage] = []

        for row in self._rows:
            if len(passages) >= limit:
                break
            if all(str(_lookup(row, f)) == v for f, v in clauses):
                try:
                    passages.append(GroundingPassage.from_record(
                        row, id_field=self.id_field, text_field=self.text_field,
                    ))
                except KeyError as e:
                    raise RetrievalError(f"Row is missing field {e}") from e

        logger.info(f"Grounding query matched {len(passages)} passages (where={where!r}, limit={limit})")
        return passages


class JsonlPassageSource(InMemoryPassageSource):
    """
    Passage source backed by a JSON Lines export of the chunks table.

    The file is read lazily on the first query.
    """

    def __init__(self, path: str | Path, id_field: str = "id", text_field: str = "full_text"):
        super().__init__(id_field=id_field, text_field=text_field)
        self.path = Path(path)
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return
        rows: list[dict[str, Any]] = []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                for line_no, line in enumerate(f, 1):
                    if not line.strip():
                        continue
                    try:
                        rows.append(json.loads(line))
                    except json.JSONDecodeError as e:
                        raise RetrievalError(
                            f"{self.path}:{line_no}: invalid JSON row ({e.msg})"
                        ) from e
        except OSError as e:
            raise RetrievalError(f"Cannot read passages from {self.path}: {e}") from e

        # Rows are stored only once the whole file has parsed
        self.add_many(rows)
        self._loaded = True
        logger.info(f"Loaded {self.size} rows from {self.path}")

    def query(self, where: Optional[str] = None, limit: int = 10) -> list[GroundingPassage]:
        self._load()
        return super().query(where=where, limit=limit)
