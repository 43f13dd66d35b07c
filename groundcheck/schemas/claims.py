"""
Claim Schema
=============

Claims are the atomic text fragments both judges score. They come
either straight from the caller (a JSON array of strings) or from
sentence segmentation of the generated answer.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Claim(BaseModel):
    """A single atomic claim, positioned by `index` in the claim list."""
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="Position in the claim list")
    text: str = Field(description="Claim text, verbatim")


class ClaimSet(BaseModel):
    """
    Ordered claims for one generated answer.

    `pre_decomposed` records which path produced them: True when the
    caller supplied a JSON array, False when they were segmented.
    """
    model_config = ConfigDict(frozen=True)

    claims: list[Claim] = Field(default_factory=list)
    pre_decomposed: bool = Field(default=False)

    @classmethod
    def from_texts(cls, texts: list[str], pre_decomposed: bool = False) -> "ClaimSet":
        return cls(
            claims=[Claim(index=i, text=t) for i, t in enumerate(texts)],
            pre_decomposed=pre_decomposed,
        )

    @property
    def texts(self) -> list[str]:
        return [c.text for c in self.claims]

    def __len__(self) -> int:
        return len(self.claims)
