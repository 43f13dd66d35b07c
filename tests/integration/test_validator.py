"""
End-to-End Validator Tests
============================

Runs GroundedOutputValidator against scripted models:
    - Report values for a mixed answer (both F1 scores, missed count)
    - Audit trail shape (start → stages → report → end)
    - Fail-fast behavior: any stage failure means no report
    - Retrieval-driven entry point (query → assemble → validate)
"""

from __future__ import annotations

import json
import math

import pytest

from groundcheck.errors import AlignmentError, ParseError, RetrievalError, TransportError
from groundcheck.grounding.source import InMemoryPassageSource
from groundcheck.pipeline import GroundedOutputValidator
from groundcheck.schemas.audit import AuditKind

from tests.conftest import (
    ENTAILMENT_MODEL,
    JUDGE_MODEL,
    ScriptedChatModel,
    make_row,
    missed_json,
    verdicts_json,
)

pytestmark = pytest.mark.integration


QUESTION = "Tell me about Paris."
ANSWER = (
    "Paris is the capital of France. "
    "It has 50 million people. "
    "The Louvre may be the largest museum in the world."
)
CLAIMS = [
    "Paris is the capital of France.",
    "It has 50 million people.",
    "The Louvre may be the largest museum in the world.",
]


@pytest.fixture
def chat() -> ScriptedChatModel:
    return ScriptedChatModel(
        entailment={CLAIMS[0]: "Yes", CLAIMS[1]: "No", CLAIMS[2]: "yes"},
        contradiction=verdicts_json("yes", "no", "idk", fenced=True),
        omission=missed_json("high", "low"),
    )


@pytest.fixture
def validator(chat, config, audit_log) -> GroundedOutputValidator:
    return GroundedOutputValidator(chat, config=config, audit_log=audit_log)


class TestValidate:
    @pytest.mark.asyncio
    async def test_report(self, validator, grounding_document):
        report = await validator.validate(QUESTION, grounding_document, ANSWER)

        assert [c.text for c in report.claims] == CLAIMS
        assert report.entailment_results == [True, False, False]
        assert (report.entailment_counts.yes, report.entailment_counts.no) == (1, 2)
        c = report.contradiction_counts
        assert (c.yes, c.no, c.idk) == (1, 1, 1)
        assert report.missed_count == 1
        # 1 / (1 + (2 + 1) / 2)
        assert report.f1_classifier == pytest.approx(0.4)
        assert report.f1_judge == pytest.approx(0.4)
        assert report.support_rate == pytest.approx(100 / 3)
        assert report.config_hash == validator.config.config_hash()

    @pytest.mark.asyncio
    async def test_call_counts(self, validator, chat, grounding_document):
        await validator.validate(QUESTION, grounding_document, ANSWER)
        assert len(chat.calls_to(ENTAILMENT_MODEL)) == 3
        # One contradiction call + one omission call
        assert len(chat.calls_to(JUDGE_MODEL)) == 2

    @pytest.mark.asyncio
    async def test_question_reaches_omission_only(self, validator, chat, grounding_document):
        await validator.validate(QUESTION, grounding_document, ANSWER)
        judge_prompts = chat.calls_to(JUDGE_MODEL)
        assert QUESTION not in judge_prompts[0]
        assert QUESTION in judge_prompts[1]

    @pytest.mark.asyncio
    async def test_stage_timings(self, validator, grounding_document):
        report = await validator.validate(QUESTION, grounding_document, ANSWER)
        assert [t.stage for t in report.stage_timings] == [
            "decompose", "entailment", "contradiction", "omission",
        ]
        assert all(t.elapsed_ms >= 0 for t in report.stage_timings)

    @pytest.mark.asyncio
    async def test_audit_trail(self, validator, audit_log, grounding_document):
        report = await validator.validate(QUESTION, grounding_document, ANSWER)
        kinds = [r.kind for r in audit_log.records]

        assert kinds[0] == AuditKind.VALIDATION_START
        assert kinds[-2:] == [AuditKind.REPORT, AuditKind.VALIDATION_END]
        assert len(audit_log.for_stage("entailment")) == 3
        assert len(audit_log.for_stage("contradiction")) == 1
        assert len(audit_log.for_stage("omission")) == 1
        assert {r.run_id for r in audit_log.records} == {report.run_id}
        assert audit_log.of_kind(AuditKind.REPORT)[0].payload["missed_count"] == 1

    @pytest.mark.asyncio
    async def test_pre_decomposed_claims(self, chat, config, audit_log, grounding_document):
        chat.contradiction = verdicts_json("yes", "yes")
        validator = GroundedOutputValidator(chat, config=config, audit_log=audit_log)
        report = await validator.validate(
            QUESTION, grounding_document, json.dumps([CLAIMS[0], CLAIMS[2]]),
        )
        assert report.entailment_results == [True, False]
        assert report.contradiction_counts.yes == 2

    @pytest.mark.asyncio
    async def test_empty_answer_scores_undefined(self, config, audit_log, grounding_document):
        chat = ScriptedChatModel(contradiction=verdicts_json(), omission=missed_json("low"))
        validator = GroundedOutputValidator(chat, config=config, audit_log=audit_log)
        report = await validator.validate(QUESTION, grounding_document, "   ")

        assert report.claims == []
        assert math.isnan(report.f1_classifier)
        assert math.isnan(report.f1_judge)
        assert chat.calls_to(ENTAILMENT_MODEL) == []

    def test_validate_sync(self, validator, grounding_document):
        report = validator.validate_sync(QUESTION, grounding_document, ANSWER)
        assert report.f1_judge == pytest.approx(0.4)

    def test_validate_sync_closes_transport(self, validator, chat, grounding_document):
        validator.validate_sync(QUESTION, grounding_document, ANSWER)
        validator.validate_sync(QUESTION, grounding_document, ANSWER)
        assert chat.closed == 2

    def test_validate_sync_closes_transport_on_failure(
        self, validator, chat, grounding_document,
    ):
        chat.contradiction = "not json"
        with pytest.raises(ParseError):
            validator.validate_sync(QUESTION, grounding_document, ANSWER)
        assert chat.closed == 1


class TestFailures:
    @pytest.mark.asyncio
    async def test_entailment_failure_aborts_call(
        self, chat, config, audit_log, grounding_document, transport_error,
    ):
        chat.entailment = lambda claim: transport_error if claim == CLAIMS[1] else "Yes"
        validator = GroundedOutputValidator(chat, config=config, audit_log=audit_log)

        with pytest.raises(TransportError):
            await validator.validate(QUESTION, grounding_document, ANSWER)

        assert audit_log.of_kind(AuditKind.REPORT) == []
        failure = audit_log.of_kind(AuditKind.FAILURE)[0]
        assert failure.stage == "entailment"
        # Later stages never ran
        assert chat.calls_to(JUDGE_MODEL) == []

    @pytest.mark.asyncio
    async def test_contradiction_parse_failure_aborts_call(
        self, chat, config, audit_log, grounding_document,
    ):
        chat.contradiction = "I think all claims are fine."
        validator = GroundedOutputValidator(chat, config=config, audit_log=audit_log)

        with pytest.raises(ParseError):
            await validator.validate(QUESTION, grounding_document, ANSWER)

        assert audit_log.of_kind(AuditKind.REPORT) == []
        assert audit_log.of_kind(AuditKind.FAILURE)[0].stage == "contradiction"
        assert audit_log.of_kind(AuditKind.VALIDATION_END)

    @pytest.mark.asyncio
    async def test_omission_parse_failure_aborts_call(
        self, chat, config, audit_log, grounding_document,
    ):
        chat.omission = '```json\n{"missed_facts": [{"fact": "x"'
        validator = GroundedOutputValidator(chat, config=config, audit_log=audit_log)

        with pytest.raises(ParseError):
            await validator.validate(QUESTION, grounding_document, ANSWER)
        assert audit_log.of_kind(AuditKind.FAILURE)[0].stage == "omission"

    @pytest.mark.asyncio
    async def test_alignment_mismatch(self, chat, config, audit_log, grounding_document):
        chat.contradiction = verdicts_json("yes", "yes")
        validator = GroundedOutputValidator(chat, config=config, audit_log=audit_log)
        with pytest.raises(AlignmentError):
            await validator.validate(QUESTION, grounding_document, ANSWER)

    @pytest.mark.asyncio
    async def test_alignment_mismatch_lenient(self, chat, audit_log, grounding_document):
        from groundcheck.config import GroundCheckConfig

        chat.contradiction = verdicts_json("yes", "yes")
        config = GroundCheckConfig(verification={"strict_alignment": False})
        validator = GroundedOutputValidator(chat, config=config, audit_log=audit_log)
        report = await validator.validate(QUESTION, grounding_document, ANSWER)
        assert report.contradiction_counts.yes == 2
        # 2 / (2 + (0 + 1) / 2)
        assert report.f1_judge == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_foreign_transport_error_still_closes_audit(
        self, chat, config, audit_log, grounding_document,
    ):
        chat.entailment = lambda claim: ConnectionError("socket closed")
        validator = GroundedOutputValidator(chat, config=config, audit_log=audit_log)

        with pytest.raises(ConnectionError):
            await validator.validate(QUESTION, grounding_document, ANSWER)

        kinds = [r.kind for r in audit_log.records]
        assert kinds[0] == AuditKind.VALIDATION_START
        assert kinds[-2:] == [AuditKind.FAILURE, AuditKind.VALIDATION_END]
        failure = audit_log.of_kind(AuditKind.FAILURE)[0]
        assert failure.stage == "entailment"
        assert failure.payload["error"] == "ConnectionError"
        assert audit_log.of_kind(AuditKind.REPORT) == []


class TestRun:
    @pytest.fixture
    def source(self) -> InMemoryPassageSource:
        store = InMemoryPassageSource()
        store.add_many([
            make_row(1, "Paris is the capital of France.", subject_id=10000032),
            make_row(2, "Berlin is the capital of Germany.", subject_id=7),
            make_row(1, "Paris is the capital of France.", subject_id=10000032),
            make_row(3, "The Louvre houses the Mona Lisa.", subject_id=10000032),
        ])
        return store

    @pytest.mark.asyncio
    async def test_retrieve_assemble_validate(self, chat, config, audit_log, source):
        validator = GroundedOutputValidator(
            chat, config=config, audit_log=audit_log, passage_source=source,
        )
        run = await validator.run(QUESTION, ANSWER)

        assert run.grounding_document == (
            "Paris is the capital of France.\nThe Louvre houses the Mona Lisa.\n"
        )
        assert len(run.passages) == 3
        assert run.report.f1_classifier == pytest.approx(0.4)
        assert "Berlin" not in chat.calls_to(ENTAILMENT_MODEL)[0]

    @pytest.mark.asyncio
    async def test_where_and_limit_override(self, chat, config, audit_log, source):
        validator = GroundedOutputValidator(
            chat, config=config, audit_log=audit_log, passage_source=source,
        )
        run = await validator.run(QUESTION, ANSWER, where="subject_id = 7", limit=1)
        assert run.grounding_document == "Berlin is the capital of Germany.\n"

    @pytest.mark.asyncio
    async def test_no_source(self, validator):
        with pytest.raises(RetrievalError):
            await validator.run(QUESTION, ANSWER)

    @pytest.mark.asyncio
    async def test_source_failure_wrapped(self, chat, config, audit_log):
        class BrokenSource:
            def query(self, where=None, limit=10):
                raise ConnectionError("store unreachable")

        validator = GroundedOutputValidator(
            chat, config=config, audit_log=audit_log, passage_source=BrokenSource(),
        )
        with pytest.raises(RetrievalError, match="store unreachable"):
            await validator.run(QUESTION, ANSWER)
        assert chat.calls == []

    def test_zero_limit_is_respected(self, chat, config, audit_log, source):
        validator = GroundedOutputValidator(
            chat, config=config, audit_log=audit_log, passage_source=source,
        )
        assert validator.retrieve(limit=0) == []

    @pytest.mark.asyncio
    async def test_negative_limit_rejected(self, chat, config, audit_log, source):
        validator = GroundedOutputValidator(
            chat, config=config, audit_log=audit_log, passage_source=source,
        )
        with pytest.raises(RetrievalError, match="non-negative"):
            await validator.run(QUESTION, ANSWER, limit=-1)
        assert chat.calls == []
