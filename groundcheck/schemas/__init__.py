"""
GroundCheck Data Schemas
=========================

Pydantic v2 models for every entity that flows through a validation
call:

1. GroundingPassage   — Retrieved passage (id + text + metadata)
2. Claim / ClaimSet   — Atomic claims decomposed from the answer
3. Verdict, MissedFact, counts, ValidationReport — stage outputs
4. AuditRecord        — One line of the append-only audit log

All entities are created fresh per call and are immutable.
"""

from groundcheck.schemas.audit import AuditKind, AuditRecord
from groundcheck.schemas.claims import Claim, ClaimSet
from groundcheck.schemas.passage import GroundingPassage
from groundcheck.schemas.verification import (
    ContradictionCounts,
    EntailmentCounts,
    Importance,
    MissedFact,
    MissedFactList,
    StageTiming,
    ValidationReport,
    Verdict,
    VerdictLabel,
    VerdictList,
)

__all__ = [
    # Audit
    "AuditKind",
    "AuditRecord",
    # Claims
    "Claim",
    "ClaimSet",
    # Passages
    "GroundingPassage",
    # Verification
    "ContradictionCounts",
    "EntailmentCounts",
    "Importance",
    "MissedFact",
    "MissedFactList",
    "StageTiming",
    "ValidationReport",
    "Verdict",
    "VerdictLabel",
    "VerdictList",
]
