"""
GroundCheck Grounding
======================

Passage sources and grounding-document assembly.

Components:
    - source.py:    PassageSource protocol + in-memory / JSONL sources
    - assembler.py: Dedup + flatten passages into one grounding document
"""

from groundcheck.grounding.assembler import assemble_grounding_document
from groundcheck.grounding.source import (
    InMemoryPassageSource,
    JsonlPassageSource,
    PassageSource,
    parse_filter,
)

__all__ = [
    "assemble_grounding_document",
    "InMemoryPassageSource",
    "JsonlPassageSource",
    "PassageSource",
    "parse_filter",
]
