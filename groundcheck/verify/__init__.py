"""
GroundCheck Verification
=========================

Judges, omission detection, and score aggregation.

Components:
    - entailment.py:    Per-claim classifier check, concurrent fan-out
    - contradiction.py: Batched yes/no/idk LLM judge
    - omission.py:      Missed-fact detection with importance tiers
    - scoring.py:       Scoring strategies + F1 aggregation
"""
