"""
Claim Decomposer
=================

Turns a generated answer into the list of atomic claims the judges
score.

Two input shapes:
    - JSON array  → the caller already decomposed the answer; every
                    element is taken verbatim as one claim
    - Anything else → the raw text is sentence-segmented; whitespace-only
                    segments are discarded, every other segment is kept
                    verbatim (punctuation included)

Data Flow:
    generated answer → ClaimDecomposer → ClaimSet → judges
"""

from __future__ import annotations

import json
import logging
import re
from typing import Optional

from groundcheck.schemas.claims import ClaimSet

logger = logging.getLogger("groundcheck.claims.decomposer")


# ── Sentence Splitters ─────────────────────────────────────────────

# Sentence-ending punctuation followed by whitespace and then an uppercase
# letter, a digit or an opening quote; or a blank line
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9\"'“‘])|\n\s*\n")


def split_sentences_regex(text: str) -> list[str]:
    """
    Regex-based sentence splitter (default).

    Not perfect: abbreviations split ("Dr. Smith", "approx. 5 mg"), and a
    sentence starting with a lowercase word stays joined to the previous
    one. Each resulting segment is scored as one claim, so use the spaCy
    splitter (`claim.use_spacy`) or pass a JSON claim array when that
    matters. Needs no model download and is deterministic.
    """
    segments = _SENTENCE_BOUNDARY.split(text)
    return [s.strip() for s in segments if s and not s.isspace()]


def _load_spacy(model_name: str):
    """Load a spaCy pipeline with a rule-based sentencizer."""
    import spacy

    try:
        nlp = spacy.load(model_name, disable=["ner", "parser", "lemmatizer"])
    except OSError:
        # Model not downloaded; a blank pipeline is enough for the sentencizer
        logger.info(f"spaCy model {model_name!r} not installed, using blank 'en' pipeline")
        nlp = spacy.blank("en")
    nlp.add_pipe("sentencizer")
    return nlp


def parse_claim_array(output: str) -> Optional[list[str]]:
    """
    Return the claims if `output` is a JSON array, else None.

    Non-string elements are rendered with str().
    """
    try:
        parsed = json.loads(output)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(parsed, list):
        return None
    return [item if isinstance(item, str) else str(item) for item in parsed]


# ── Decomposer ─────────────────────────────────────────────────────

class ClaimDecomposer:
    """
    Splits a generated answer into atomic claims.

    Usage:
        decomposer = ClaimDecomposer()
        claim_set = decomposer.decompose("Paris is in France. It has 2M people.")
        claim_set.texts  # ["Paris is in France.", "It has 2M people."]

    Args:
        use_spacy: Segment with spaCy's sentencizer instead of the regex.
        spacy_model: spaCy pipeline name to load when `use_spacy` is set.
    """

    def __init__(self, use_spacy: bool = False, spacy_model: str = "en_core_web_sm"):
        self.use_spacy = use_spacy
        self.spacy_model = spacy_model
        self._nlp = None

    def split_sentences(self, text: str) -> list[str]:
        """Segment raw text into non-blank sentences."""
        if not self.use_spacy:
            return split_sentences_regex(text)

        if self._nlp is None:
            self._nlp = _load_spacy(self.spacy_model)
        doc = self._nlp(text)
        return [sent.text.strip() for sent in doc.sents if not sent.text.isspace() and sent.text]

    def decompose(self, output: str) -> ClaimSet:
        """
        Decompose a generated answer into claims.

        Args:
            output: The generated answer, or a JSON array of claims.

        Returns:
            ClaimSet in answer order.
        """
        pre_decomposed = parse_claim_array(output)
        if pre_decomposed is not None:
            logger.debug(f"Using {len(pre_decomposed)} pre-decomposed claims")
            return ClaimSet.from_texts(pre_decomposed, pre_decomposed=True)

        sentences = self.split_sentences(output)
        logger.debug(f"Segmented answer into {len(sentences)} claims")
        return ClaimSet.from_texts(sentences, pre_decomposed=False)
