"""
GroundCheck Validation Pipeline
================================

Orchestrates one grounded-output validation:
    Decompose → Entailment (fan-out) → Contradiction → Omission → Aggregate

and, for the retrieval-driven entry point:
    Retrieve → Assemble → validate(...)

Stages run in that order on a single asyncio task. Only the entailment
stage fans out. Any stage error (TransportError, ParseError, or anything
else a transport raises) aborts the call: no report is produced from
partial stage results, and the audit log still gets failure and end
records. Everything sent to and received from the models is written
to the audit log with per-stage timings.

Usage:
    from groundcheck.pipeline import GroundedOutputValidator

    validator = GroundedOutputValidator.from_config(cfg)
    report = await validator.validate(prompt, grounding_doc, answer)
    print(report.f1_classifier, report.f1_judge)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from groundcheck.audit import AuditLog, AuditTrail, FileAuditLog, NullAuditLog
from groundcheck.claims.decomposer import ClaimDecomposer
from groundcheck.config import GroundCheckConfig, get_config
from groundcheck.errors import RetrievalError
from groundcheck.grounding.assembler import assemble_grounding_document
from groundcheck.grounding.source import PassageSource
from groundcheck.llm.client import ChatModel, OpenAIChatModel
from groundcheck.schemas.passage import GroundingPassage
from groundcheck.schemas.verification import StageTiming, ValidationReport
from groundcheck.utils import elapsed_ms, generate_run_id
from groundcheck.verify.contradiction import ContradictionJudge
from groundcheck.verify.entailment import EntailmentJudge
from groundcheck.verify.omission import OmissionDetector
from groundcheck.verify.scoring import aggregate

logger = logging.getLogger("groundcheck.pipeline")


@dataclass
class ValidationRun:
    """Output of the retrieval-driven entry point."""
    grounding_document: str
    passages: list[GroundingPassage]
    report: ValidationReport


class GroundedOutputValidator:
    """
    End-to-end grounded-output validator.

    Args:
        chat_model: Transport shared by all judges.
        config: GroundCheck configuration.
        audit_log: Audit sink (defaults to the configured file, or a
            null sink when auditing is disabled).
        passage_source: Source used by `run()`; not needed for `validate()`.
    """

    def __init__(
        self,
        chat_model: ChatModel,
        config: Optional[GroundCheckConfig] = None,
        audit_log: Optional[AuditLog] = None,
        passage_source: Optional[PassageSource] = None,
    ):
        self.config = config or get_config()
        self.chat_model = chat_model
        self.passage_source = passage_source

        if audit_log is not None:
            self.audit_log = audit_log
        elif self.config.audit.enabled:
            self.audit_log = FileAuditLog(self.config.audit.log_path)
        else:
            self.audit_log = NullAuditLog()

        self.decomposer = ClaimDecomposer(
            use_spacy=self.config.claim.use_spacy,
            spacy_model=self.config.claim.spacy_model,
        )
        self.entailment_judge = EntailmentJudge(
            chat_model, model=self.config.model.entailment_model,
        )
        self.contradiction_judge = ContradictionJudge(
            chat_model,
            model=self.config.model.judge_model,
            strict_alignment=self.config.verification.strict_alignment,
        )
        self.omission_detector = OmissionDetector(
            chat_model, model=self.config.model.judge_model,
        )

    @classmethod
    def from_config(
        cls,
        config: Optional[GroundCheckConfig] = None,
        passage_source: Optional[PassageSource] = None,
    ) -> "GroundedOutputValidator":
        """Create a validator talking to the configured OpenAI-compatible endpoint."""
        config = config or get_config()
        return cls(
            chat_model=OpenAIChatModel.from_config(config.model),
            config=config,
            passage_source=passage_source,
        )

    async def validate(
        self,
        prompt: str,
        grounding_document: str,
        output: str,
    ) -> ValidationReport:
        """
        Validate a generated answer against its grounding document.

        Args:
            prompt: The prompt/question that produced the answer.
            grounding_document: Assembled grounding text.
            output: The generated answer, or a JSON array of claims.

        Returns:
            ValidationReport (also written to the audit log).

        Raises:
            TransportError: A model call failed.
            ParseError: A judge reply held no valid payload.
        """
        run_id = generate_run_id()
        trail = AuditTrail(self.audit_log, run_id)
        timings: list[StageTiming] = []
        total_start = time.perf_counter()
        stage = "decompose"

        trail.start({
            "prompt": prompt,
            "output": output,
            "config_hash": self.config.config_hash(),
        })

        try:
            # ── Step 1: Decompose ──────────────────────────────────
            t0 = time.perf_counter()
            claim_set = self.decomposer.decompose(output)
            claims = claim_set.texts
            timings.append(StageTiming(stage=stage, elapsed_ms=elapsed_ms(t0)))

            # ── Step 2: Entailment (concurrent) ────────────────────
            stage = "entailment"
            t0 = time.perf_counter()
            entailment_results = await self.entailment_judge.judge(
                grounding_document, claims, trail
            )
            timings.append(StageTiming(stage=stage, elapsed_ms=elapsed_ms(t0)))

            # ── Step 3: Contradiction ──────────────────────────────
            stage = "contradiction"
            t0 = time.perf_counter()
            verdicts = await self.contradiction_judge.judge(
                grounding_document, claims, trail
            )
            timings.append(StageTiming(stage=stage, elapsed_ms=elapsed_ms(t0)))

            # ── Step 4: Omission ───────────────────────────────────
            stage = "omission"
            t0 = time.perf_counter()
            missed_facts = await self.omission_detector.detect(
                prompt, grounding_document, claims, trail
            )
            timings.append(StageTiming(stage=stage, elapsed_ms=elapsed_ms(t0)))
        except Exception as e:
            # Any stage error closes the audit record before propagating
            trail.failure(stage, e)
            trail.end(elapsed_ms(total_start))
            raise

        # ── Step 5: Aggregate ──────────────────────────────────────
        report = aggregate(
            run_id=run_id,
            claims=claim_set.claims,
            entailment_results=entailment_results,
            verdicts=verdicts,
            missed_facts=missed_facts,
            stage_timings=timings,
            config_hash=self.config.config_hash(),
        )
        trail.report(report.model_dump(mode="json"))
        trail.end(elapsed_ms(total_start))

        logger.info(
            f"Validation {run_id}: {len(claims)} claims | "
            f"F1 classifier={report.f1_classifier:.3f} judge={report.f1_judge:.3f} | "
            f"missed={report.missed_count}"
        )
        return report

    def validate_sync(self, prompt: str, grounding_document: str, output: str) -> ValidationReport:
        """Blocking wrapper around `validate()` for non-async callers."""

        async def _validate_and_close() -> ValidationReport:
            try:
                return await self.validate(prompt, grounding_document, output)
            finally:
                await self.aclose()

        return asyncio.run(_validate_and_close())

    async def aclose(self) -> None:
        """Release the chat transport (call on the loop that used it)."""
        await self.chat_model.aclose()

    def retrieve(self, where: Optional[str] = None, limit: Optional[int] = None) -> list[GroundingPassage]:
        """
        Query the passage source with the configured filter and limit.

        Raises:
            RetrievalError: No source configured, or the source failed.
        """
        if self.passage_source is None:
            raise RetrievalError("No passage source configured")

        where = where if where is not None else self.config.retrieval.where
        limit = limit if limit is not None else self.config.retrieval.limit
        if limit < 0:
            raise RetrievalError(f"Passage limit must be non-negative, got {limit}")
        try:
            return self.passage_source.query(where=where, limit=limit)
        except RetrievalError:
            raise
        except Exception as e:
            raise RetrievalError(f"Grounding query failed: {e}") from e

    async def run(
        self,
        prompt: str,
        output: str,
        where: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ValidationRun:
        """
        Retrieve grounding passages, assemble them, and validate `output`.

        Returns:
            ValidationRun with the grounding document and report.
        """
        passages = self.retrieve(where=where, limit=limit)
        grounding_document = assemble_grounding_document(passages)
        logger.info(
            f"Assembled grounding document from {len(passages)} passages "
            f"({len(grounding_document)} chars)"
        )
        report = await self.validate(prompt, grounding_document, output)
        return ValidationRun(
            grounding_document=grounding_document,
            passages=passages,
            report=report,
        )
