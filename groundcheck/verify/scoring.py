"""
Metric Aggregator
==================

Folds the three stage outputs into two F1-style scores:

    F1 = TP / (TP + (FP + FN) / 2)

Each score is produced by a scoring strategy that maps the shared
inputs onto a confusion triple:

    ClassifierStrategy:  TP = entail.yes   FP = entail.no               FN = missed
    JudgeStrategy:       TP = judge.yes    FP = judge.no + judge.idk    FN = missed

Both strategies share the same missed count. A zero denominator makes
the score undefined and it is returned as NaN, never coerced to 0 or 1.
"""

from __future__ import annotations

import math
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from groundcheck.schemas.claims import Claim
from groundcheck.schemas.verification import (
    ContradictionCounts,
    EntailmentCounts,
    MissedFact,
    StageTiming,
    ValidationReport,
    Verdict,
)
from groundcheck.verify.omission import missed_count


class ConfusionCounts(BaseModel):
    """True positives, false positives and false negatives for one score."""
    model_config = ConfigDict(frozen=True)

    tp: int = Field(ge=0)
    fp: int = Field(ge=0)
    fn: int = Field(ge=0)


class ScoringInputs(BaseModel):
    """Everything a strategy may read. Built once per validate call."""
    model_config = ConfigDict(frozen=True)

    entailment_counts: EntailmentCounts = Field(default_factory=EntailmentCounts)
    contradiction_counts: ContradictionCounts = Field(default_factory=ContradictionCounts)
    missed_count: int = Field(default=0, ge=0)


class ClassifierStrategy(BaseModel):
    """Score from the entailment classifier's yes/no results."""
    kind: Literal["classifier"] = "classifier"

    def confusion(self, inputs: ScoringInputs) -> ConfusionCounts:
        return ConfusionCounts(
            tp=inputs.entailment_counts.yes,
            fp=inputs.entailment_counts.no,
            fn=inputs.missed_count,
        )


class JudgeStrategy(BaseModel):
    """Score from the contradiction judge's verdicts; idk counts against."""
    kind: Literal["judge"] = "judge"

    def confusion(self, inputs: ScoringInputs) -> ConfusionCounts:
        return ConfusionCounts(
            tp=inputs.contradiction_counts.yes,
            fp=inputs.contradiction_counts.no + inputs.contradiction_counts.idk,
            fn=inputs.missed_count,
        )


ScoringStrategy = Annotated[
    Union[ClassifierStrategy, JudgeStrategy],
    Field(discriminator="kind"),
]


def f1_score(confusion: ConfusionCounts) -> float:
    """F1 = TP / (TP + (FP + FN) / 2); NaN when the denominator is zero."""
    denominator = confusion.tp + (confusion.fp + confusion.fn) / 2
    if denominator == 0:
        return math.nan
    return confusion.tp / denominator


def score(strategy: ScoringStrategy, inputs: ScoringInputs) -> float:
    """Apply one strategy to the shared inputs."""
    return f1_score(strategy.confusion(inputs))


def support_rate(results: list[bool]) -> float:
    """Percentage of claims the classifier supported; NaN with no claims."""
    if not results:
        return math.nan
    return sum(1 for r in results if r) / len(results) * 100


def aggregate(
    run_id: str,
    claims: list[Claim],
    entailment_results: list[bool],
    verdicts: list[Verdict],
    missed_facts: list[MissedFact],
    stage_timings: Optional[list[StageTiming]] = None,
    config_hash: Optional[str] = None,
) -> ValidationReport:
    """
    Build the ValidationReport for one validate call.

    Args:
        run_id: Validation run identifier.
        claims: Claims that were judged.
        entailment_results: Classifier results, aligned with claims.
        verdicts: Contradiction-judge verdicts, aligned with claims.
        missed_facts: Omission detector output (all tiers).
        stage_timings: Wall-clock duration per stage.
        config_hash: Configuration stamp.

    Returns:
        Frozen ValidationReport with both F1 scores.
    """
    inputs = ScoringInputs(
        entailment_counts=EntailmentCounts.from_results(entailment_results),
        contradiction_counts=ContradictionCounts.from_verdicts(verdicts),
        missed_count=missed_count(missed_facts),
    )

    return ValidationReport(
        run_id=run_id,
        config_hash=config_hash,
        entailment_counts=inputs.entailment_counts,
        contradiction_counts=inputs.contradiction_counts,
        missed_count=inputs.missed_count,
        f1_classifier=score(ClassifierStrategy(), inputs),
        f1_judge=score(JudgeStrategy(), inputs),
        support_rate=support_rate(entailment_results),
        stage_timings=stage_timings or [],
        claims=claims,
        entailment_results=entailment_results,
        verdicts=verdicts,
        missed_facts=missed_facts,
    )
