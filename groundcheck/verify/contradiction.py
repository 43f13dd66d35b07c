"""
Contradiction Judge
====================

Batched LLM-as-judge: one call scores the whole claim list against the
grounding document. The model returns one verdict per claim:

    yes  → the document supports the claim
    no   → the document DIRECTLY contradicts the claim
    idk  → anything else, including missing support and hedged or
           speculative wording

"no" is reserved for explicit contradiction; a claim the document is
silent on is "idk", never "no".

Verdicts are aligned to claims by position. With strict alignment
(default) a count mismatch fails the stage with AlignmentError.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Optional

from groundcheck.audit import AuditTrail
from groundcheck.errors import AlignmentError
from groundcheck.llm.client import ChatModel
from groundcheck.llm.parsing import parse_response
from groundcheck.schemas.verification import ContradictionCounts, Verdict, VerdictList
from groundcheck.utils import elapsed_ms

logger = logging.getLogger("groundcheck.verify.contradiction")

STAGE = "contradiction"


CONTRADICTION_PROMPT = """You are a careful fact-checking judge. For each CLAIM, decide whether the GROUNDING DOCUMENT supports it, directly contradicts it, or neither.

Verdict rules:
- "yes": the grounding document supports the claim.
- "no": the grounding document DIRECTLY contradicts the claim (different numbers, dates, names, or an explicit negation). Use "no" ONLY for a direct contradiction.
- "idk": the grounding document neither supports nor contradicts the claim. Missing information is "idk", never "no". Claims using hedged or speculative language (may, might, possibly, likely) are "idk".

Return exactly one verdict per claim, in the same order as the claims. Give a short reason for every "no" and "idk" verdict.

Example:
GROUNDING DOCUMENT:
The patient was admitted on March 3 with chest pain. An ECG showed no abnormalities. The patient was discharged on March 5.

CLAIMS:
["The patient was admitted with chest pain.", "The patient was discharged on March 9.", "The patient may have a family history of heart disease."]

Output:
```json
{{
  "verdicts": [
    {{"verdict": "yes"}},
    {{"verdict": "no", "reason": "The document states the patient was discharged on March 5, not March 9."}},
    {{"verdict": "idk", "reason": "Family history is not mentioned, and the claim is speculative."}}
  ]
}}
```

Now judge these claims.

GROUNDING DOCUMENT:
{document}

CLAIMS:
{claims}

Respond with ONLY a JSON object of the form:
{{"verdicts": [{{"verdict": "yes|no|idk", "reason": "<optional>"}}, ...]}}"""


class ContradictionJudge:
    """
    Single-call contradiction judge over the full claim list.

    Usage:
        judge = ContradictionJudge(chat_model, model="qwen2.5-coder")
        verdicts = await judge.judge(grounding_doc, claims)
        counts = ContradictionCounts.from_verdicts(verdicts)

    Args:
        chat_model: Transport implementing the ChatModel protocol.
        model: Instruction-following judge model name.
        strict_alignment: Raise AlignmentError when the verdict count
            differs from the claim count.
    """

    def __init__(
        self,
        chat_model: ChatModel,
        model: str = "qwen2.5-coder",
        strict_alignment: bool = True,
    ):
        self.chat_model = chat_model
        self.model = model
        self.strict_alignment = strict_alignment

    @staticmethod
    def build_prompt(document: str, claims: list[str]) -> str:
        return CONTRADICTION_PROMPT.format(
            document=document,
            claims=json.dumps(claims, ensure_ascii=False),
        )

    async def judge(
        self,
        document: str,
        claims: list[str],
        trail: Optional[AuditTrail] = None,
    ) -> list[Verdict]:
        """
        Judge all claims in one model call.

        Returns:
            Verdicts in claim order.

        Raises:
            TransportError: If the model call fails.
            ParseError: If the reply holds no valid verdict payload.
            AlignmentError: On a count mismatch under strict alignment.
        """
        prompt = self.build_prompt(document, claims)
        start = time.perf_counter()
        reply = await self.chat_model.chat(
            self.model, [{"role": "user", "content": prompt}]
        )
        if trail is not None:
            trail.stage(STAGE, prompt, reply, elapsed_ms(start))

        verdicts = parse_response(reply, VerdictList).unwrap().verdicts

        if len(verdicts) != len(claims):
            if self.strict_alignment:
                raise AlignmentError(expected=len(claims), actual=len(verdicts), raw=reply)
            logger.warning(
                f"Judge returned {len(verdicts)} verdicts for {len(claims)} claims; "
                f"tallying what was returned"
            )

        counts = ContradictionCounts.from_verdicts(verdicts)
        logger.info(f"Contradiction: yes={counts.yes} no={counts.no} idk={counts.idk}")
        return verdicts
