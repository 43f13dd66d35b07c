"""
Omission Detector
==================

Finds facts in the grounding document that are relevant to the
original question but missing from the answer's claims. One model
call; each missed fact carries an importance tier:

    high / medium → counts as a false negative in both F1 scores
    low           → reported, but never penalizes
"""

from __future__ import annotations

import json
import logging
import time
from typing import Optional

from groundcheck.audit import AuditTrail
from groundcheck.llm.client import ChatModel
from groundcheck.llm.parsing import parse_response
from groundcheck.schemas.verification import MissedFact, MissedFactList
from groundcheck.utils import elapsed_ms

logger = logging.getLogger("groundcheck.verify.omission")

STAGE = "omission"


OMISSION_PROMPT = """You are reviewing an answer for completeness. Given the QUESTION, the GROUNDING DOCUMENT, and the CLAIMS made in the answer, list every fact from the grounding document that is relevant to the question but is NOT stated in any of the claims.

For each missed fact, rate how important it is for answering the question:
- "high": the answer is misleading or wrong without it
- "medium": the answer is noticeably incomplete without it
- "low": nice to have

Only list facts that appear in the grounding document. Do not list facts that are already covered by a claim. If nothing is missing, return an empty list.

QUESTION:
{question}

GROUNDING DOCUMENT:
{document}

CLAIMS:
{claims}

Respond with ONLY a JSON object of the form:
{{"missed_facts": [{{"fact": "<fact>", "value": "high|medium|low", "reason": "<why it matters>"}}, ...]}}"""


def missed_count(facts: list[MissedFact]) -> int:
    """Number of omissions that penalize the score (high + medium)."""
    return sum(1 for f in facts if f.penalizes)


class OmissionDetector:
    """
    Single-call omission detector.

    Usage:
        detector = OmissionDetector(chat_model, model="qwen2.5-coder")
        facts = await detector.detect(question, grounding_doc, claims)
        fn = missed_count(facts)

    Args:
        chat_model: Transport implementing the ChatModel protocol.
        model: Instruction-following judge model name.
    """

    def __init__(self, chat_model: ChatModel, model: str = "qwen2.5-coder"):
        self.chat_model = chat_model
        self.model = model

    @staticmethod
    def build_prompt(question: str, document: str, claims: list[str]) -> str:
        return OMISSION_PROMPT.format(
            question=question,
            document=document,
            claims=json.dumps(claims, ensure_ascii=False),
        )

    async def detect(
        self,
        question: str,
        document: str,
        claims: list[str],
        trail: Optional[AuditTrail] = None,
    ) -> list[MissedFact]:
        """
        List grounding facts the claims left out.

        Raises:
            TransportError: If the model call fails.
            ParseError: If the reply holds no valid missed-facts payload.
        """
        prompt = self.build_prompt(question, document, claims)
        start = time.perf_counter()
        reply = await self.chat_model.chat(
            self.model, [{"role": "user", "content": prompt}]
        )
        if trail is not None:
            trail.stage(STAGE, prompt, reply, elapsed_ms(start))

        facts = parse_response(reply, MissedFactList).unwrap().missed_facts
        logger.info(f"Omission: {len(facts)} missed facts, {missed_count(facts)} high/medium")
        return facts
