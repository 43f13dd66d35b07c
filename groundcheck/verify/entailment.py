"""
Entailment Judge
=================

Per-claim binary support check using a narrow grounding classifier
(Bespoke-MiniCheck by default). The classifier sees one
document/claim pair per call and answers "Yes" when the document
supports the claim.

Decision rule:
    supported  ⇔  reply == "Yes"   (exact, case-sensitive, untrimmed)

Anything else ("yes", "Yes.", "Yes, because ...", "No") is non-support.

Concurrency:
    All N claims are checked concurrently inside one asyncio.TaskGroup.
    The stage is all-or-nothing: the first failing call cancels the
    outstanding siblings and the original error propagates; no partial
    result list is ever returned.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from groundcheck.audit import AuditTrail
from groundcheck.llm.client import ChatModel
from groundcheck.schemas.verification import EntailmentCounts
from groundcheck.utils import elapsed_ms

logger = logging.getLogger("groundcheck.verify.entailment")

STAGE = "entailment"
SUPPORTED_REPLY = "Yes"
CLAIM_PROMPT = "Document: {document}\nClaim: {claim}"


class EntailmentJudge:
    """
    Claim-by-claim support classifier.

    Usage:
        judge = EntailmentJudge(chat_model)
        results = await judge.judge(grounding_doc, ["claim one", "claim two"])
        counts = EntailmentCounts.from_results(results)

    Args:
        chat_model: Transport implementing the ChatModel protocol.
        model: Classifier model name.
    """

    def __init__(self, chat_model: ChatModel, model: str = "bespoke-minicheck"):
        self.chat_model = chat_model
        self.model = model

    @staticmethod
    def build_prompt(document: str, claim: str) -> str:
        return CLAIM_PROMPT.format(document=document, claim=claim)

    async def check_claim(
        self,
        document: str,
        claim: str,
        trail: Optional[AuditTrail] = None,
    ) -> bool:
        """
        Ask the classifier whether `document` supports `claim`.

        Raises:
            TransportError: If the model call fails.
        """
        prompt = self.build_prompt(document, claim)
        start = time.perf_counter()
        reply = await self.chat_model.chat(
            self.model, [{"role": "user", "content": prompt}]
        )
        if trail is not None:
            trail.stage(STAGE, prompt, reply, elapsed_ms(start))
        return reply == SUPPORTED_REPLY

    async def judge(
        self,
        document: str,
        claims: list[str],
        trail: Optional[AuditTrail] = None,
    ) -> list[bool]:
        """
        Check every claim concurrently.

        Returns:
            One boolean per claim, in claim order.

        Raises:
            The first error raised by any call (other calls are cancelled).
        """
        if not claims:
            return []

        logger.info(f"Checking {len(claims)} claims against {self.model}")
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(self.check_claim(document, claim, trail))
                    for claim in claims
                ]
        except ExceptionGroup as eg:
            # TaskGroup wraps failures; surface the first one as-is
            first = eg.exceptions[0]
            logger.error(f"Entailment stage aborted: {first}")
            raise first from eg

        results = [task.result() for task in tasks]
        counts = EntailmentCounts.from_results(results)
        logger.info(f"Entailment: {counts.yes}/{counts.total} claims supported")
        return results
