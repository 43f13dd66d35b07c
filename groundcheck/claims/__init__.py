"""Claim decomposition (JSON array passthrough or sentence segmentation)."""

from groundcheck.claims.decomposer import (
    ClaimDecomposer,
    parse_claim_array,
    split_sentences_regex,
)

__all__ = ["ClaimDecomposer", "parse_claim_array", "split_sentences_regex"]
