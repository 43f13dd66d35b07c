"""
Grounding Assembler
====================

Flattens retrieved passages into the single grounding document both
judges check claims against.

Rules:
    - Passages are visited in retrieval order
    - A passage whose id was already seen is skipped (first-seen wins)
    - Only the passage text is kept; each text is followed by a newline
"""

from __future__ import annotations

import logging
from typing import Iterable

from groundcheck.schemas.passage import GroundingPassage

logger = logging.getLogger("groundcheck.grounding.assembler")


def assemble_grounding_document(passages: Iterable[GroundingPassage]) -> str:
    """
    Deduplicate passages by id and concatenate their text.

    Args:
        passages: Passages in retrieval order.

    Returns:
        Newline-terminated concatenation of unique passage texts.
        Empty string when there are no passages.
    """
    seen_ids: set[str] = set()
    parts: list[str] = []
    skipped = 0

    for passage in passages:
        if passage.id in seen_ids:
            skipped += 1
            continue
        seen_ids.add(passage.id)
        parts.append(passage.text + "\n")

    if skipped:
        logger.debug(f"Skipped {skipped} duplicate passages")

    return "".join(parts)
