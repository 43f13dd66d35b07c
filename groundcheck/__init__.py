"""
GroundCheck — Grounded-Output Verification for RAG
====================================================

GroundCheck scores a generated answer against the retrieved passages it
was supposed to be grounded in. The answer is split into atomic claims,
every claim is judged twice (narrow entailment classifier + general LLM
contradiction judge), omitted grounding facts are collected, and the
results are folded into two F1-style quality scores.

Architecture Overview:
    Passages → Assemble → Decompose → {Entail, Contradict, Omit} → Aggregate

Modules:
    - grounding: Passage sources and grounding-document assembly
    - claims:    Claim decomposition (JSON array or sentence split)
    - llm:       Chat model transport + structured response parsing
    - verify:    Entailment judge, contradiction judge, omission detector, scoring
    - audit:     Append-only audit log
    - pipeline:  End-to-end validator
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
