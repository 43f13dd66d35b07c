"""
Verification Result Schemas
============================

Structured outputs of the three evaluation stages and the final
validation report.

Design Decisions:
    - Judge payload models (`VerdictList`, `MissedFactList`) double as
      the schemas the response parser validates model output against
    - Tallies are separate models so both scoring strategies can read
      them without knowing which judge produced them
    - Undefined F1 scores are NaN, never 0 or 1 (NaN serializes as null)

Data Flow:
    judges → Verdict / MissedFact / bool → counts → ValidationReport
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from groundcheck.schemas.claims import Claim


class VerdictLabel(str, Enum):
    """
    Contradiction-judge label.

    - YES: grounding document supports the claim
    - NO:  grounding document directly contradicts the claim
    - IDK: no support either way (including hedged or speculative claims)
    """
    YES = "yes"
    NO = "no"
    IDK = "idk"


class Importance(str, Enum):
    """Importance tier of an omitted fact."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Verdict(BaseModel):
    """One contradiction-judge verdict, aligned by position with the claims."""
    model_config = ConfigDict(frozen=True)

    verdict: VerdictLabel
    reason: Optional[str] = None


class VerdictList(BaseModel):
    """Payload expected from the contradiction judge."""
    verdicts: list[Verdict]


class MissedFact(BaseModel):
    """
    A grounding fact the answer left out.

    The importance tier travels under the wire name `value`.
    """
    model_config = ConfigDict(frozen=True)

    fact: str
    value: Importance
    reason: str = ""

    @property
    def penalizes(self) -> bool:
        """High and medium omissions count against the score; low ones do not."""
        return self.value in (Importance.HIGH, Importance.MEDIUM)


class MissedFactList(BaseModel):
    """Payload expected from the omission detector."""
    missed_facts: list[MissedFact]


class EntailmentCounts(BaseModel):
    """Tally of entailment-classifier results."""
    model_config = ConfigDict(frozen=True)

    yes: int = Field(default=0, ge=0)
    no: int = Field(default=0, ge=0)

    @classmethod
    def from_results(cls, results: list[bool]) -> "EntailmentCounts":
        supported = sum(1 for r in results if r)
        return cls(yes=supported, no=len(results) - supported)

    @property
    def total(self) -> int:
        return self.yes + self.no


class ContradictionCounts(BaseModel):
    """Tally of contradiction-judge verdicts."""
    model_config = ConfigDict(frozen=True)

    yes: int = Field(default=0, ge=0)
    no: int = Field(default=0, ge=0)
    idk: int = Field(default=0, ge=0)

    @classmethod
    def from_verdicts(cls, verdicts: list[Verdict]) -> "ContradictionCounts":
        return cls(
            yes=sum(1 for v in verdicts if v.verdict == VerdictLabel.YES),
            no=sum(1 for v in verdicts if v.verdict == VerdictLabel.NO),
            idk=sum(1 for v in verdicts if v.verdict == VerdictLabel.IDK),
        )

    @property
    def total(self) -> int:
        return self.yes + self.no + self.idk


class StageTiming(BaseModel):
    """Wall-clock duration of one evaluation stage."""
    model_config = ConfigDict(frozen=True)

    stage: str
    elapsed_ms: float = Field(ge=0.0)


class ValidationReport(BaseModel):
    """
    Complete result of one validate call.

    Schema:
        {
          "run_id": "groundcheck-20250209-143022-a1b2c3d4",
          "entailment_counts": {"yes": 3, "no": 1},
          "contradiction_counts": {"yes": 3, "no": 0, "idk": 1},
          "missed_count": 1,
          "f1_classifier": 0.75,
          "f1_judge": 0.75,
          "support_rate": 75.0,
          "stage_timings": [{"stage": "entailment", "elapsed_ms": 812.4}, ...]
        }
    """
    model_config = ConfigDict(frozen=True)

    run_id: str
    config_hash: Optional[str] = None
    entailment_counts: EntailmentCounts
    contradiction_counts: ContradictionCounts
    missed_count: int = Field(ge=0)
    f1_classifier: float
    f1_judge: float
    support_rate: float = Field(description="Percent of claims the classifier supported")
    stage_timings: list[StageTiming] = Field(default_factory=list)
    claims: list[Claim] = Field(default_factory=list)
    entailment_results: list[bool] = Field(default_factory=list)
    verdicts: list[Verdict] = Field(default_factory=list)
    missed_facts: list[MissedFact] = Field(default_factory=list)

    @property
    def f1_classifier_defined(self) -> bool:
        return not math.isnan(self.f1_classifier)

    @property
    def f1_judge_defined(self) -> bool:
        return not math.isnan(self.f1_judge)

    def summary(self) -> dict:
        """Compact view for logging (no claim text)."""
        return {
            "entailment": self.entailment_counts.model_dump(),
            "contradiction": self.contradiction_counts.model_dump(),
            "missed": self.missed_count,
            "f1_classifier": self.f1_classifier,
            "f1_judge": self.f1_judge,
            "support_rate": self.support_rate,
        }
