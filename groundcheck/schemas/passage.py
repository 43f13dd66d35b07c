"""
Grounding Passage Schema
=========================

A retrieved passage as handed over by the passage source. Only `text`
ever reaches the grounding document; everything else a vector store
row carries (embedding vector, chunked excerpt, location metadata)
is either dropped or parked in `metadata` for debugging.

Data Flow:
    PassageSource.query() → GroundingPassage → Assembler → grounding document
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

# Row fields that never survive into a passage, not even as metadata.
STRIPPED_FIELDS = ("vector", "text", "loc")


class GroundingPassage(BaseModel):
    """
    One retrieved passage. Identity key is `id`.

    Schema:
        {
          "id": "chunk-17",
          "text": "Patient was admitted on ...",
          "metadata": {"subject_id": 10000032, "source": "discharge"}
        }
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Passage identifier (dedup key)")
    text: str = Field(description="Passage text used for grounding")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Auxiliary non-text fields (never part of the grounding document)"
    )

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        id_field: str = "id",
        text_field: str = "full_text",
    ) -> "GroundingPassage":
        """
        Build a passage from a raw store row.

        The embedding vector, the chunked `text` excerpt and the `loc`
        block are discarded; any other field is kept as metadata.

        Raises:
            KeyError: If the row lacks the id or text field.
        """
        metadata = {
            key: value
            for key, value in record.items()
            if key not in (id_field, text_field) and key not in STRIPPED_FIELDS
        }
        return cls(
            id=str(record[id_field]),
            text=str(record[text_field]),
            metadata=metadata,
        )
