"""
GroundCheck Test Configuration
================================

Shared fixtures, factories, and fakes for the entire test suite.
No test talks to a real model: judges run against ScriptedChatModel.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Callable, Union

import pytest

# ── Ensure test mode ────────────────────────────────────────────
os.environ.setdefault("GROUNDCHECK_AUDIT__ENABLED", "false")

from groundcheck.audit import InMemoryAuditLog
from groundcheck.config import GroundCheckConfig
from groundcheck.errors import TransportError
from groundcheck.schemas.passage import GroundingPassage


ENTAILMENT_MODEL = "bespoke-minicheck"
JUDGE_MODEL = "qwen2.5-coder"


# ── Markers ─────────────────────────────────────────────────────

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line("markers", "integration: multi-component tests")


# ── Fakes ───────────────────────────────────────────────────────

Reply = Union[str, BaseException]


class ScriptedChatModel:
    """
    In-process stand-in for the chat transport.

    Routing:
        - entailment model → `entailment(claim)` (str reply or exception)
        - judge model, omission prompt → `omission`
        - judge model, anything else → `contradiction`

    Every call is recorded in `calls` as (model, prompt).
    """

    def __init__(
        self,
        entailment: Callable[[str], Reply] | dict[str, Reply] | None = None,
        contradiction: Reply = '{"verdicts": []}',
        omission: Reply = '{"missed_facts": []}',
        delays: dict[str, float] | None = None,
    ):
        if entailment is None:
            entailment = lambda claim: "Yes"  # noqa: E731
        elif isinstance(entailment, dict):
            mapping = entailment
            entailment = lambda claim: mapping.get(claim, "No")  # noqa: E731
        self.entailment = entailment
        self.contradiction = contradiction
        self.omission = omission
        self.delays = delays or {}
        self.calls: list[tuple[str, str]] = []
        self.cancelled: list[str] = []
        self.closed = 0

    @staticmethod
    def claim_of(prompt: str) -> str:
        return prompt.rsplit("\nClaim: ", 1)[1]

    async def chat(self, model: str, messages: list[dict[str, str]]) -> str:
        prompt = messages[-1]["content"]
        self.calls.append((model, prompt))

        if model == ENTAILMENT_MODEL:
            claim = self.claim_of(prompt)
            try:
                await asyncio.sleep(self.delays.get(claim, 0))
            except asyncio.CancelledError:
                self.cancelled.append(claim)
                raise
            reply = self.entailment(claim)
        elif "missed_facts" in prompt:
            reply = self.omission
        else:
            reply = self.contradiction

        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def aclose(self) -> None:
        self.closed += 1

    def calls_to(self, model: str) -> list[str]:
        return [prompt for m, prompt in self.calls if m == model]


# ── Factories ───────────────────────────────────────────────────

def make_passage(
    passage_id: str = "p0",
    text: str = "Default passage text.",
    **metadata: Any,
) -> GroundingPassage:
    """Factory for creating test passages."""
    return GroundingPassage(id=passage_id, text=text, metadata=metadata)


def make_row(
    row_id: Any = 1,
    full_text: str = "Default row text.",
    **extra: Any,
) -> dict[str, Any]:
    """Factory for raw chunks-table rows (as the vector store returns them)."""
    row = {
        "id": row_id,
        "full_text": full_text,
        "text": full_text[:20],
        "vector": [0.1, 0.2, 0.3],
        "loc": {"lines": {"from": 1, "to": 3}},
    }
    row.update(extra)
    return row


def verdicts_json(*labels: str, fenced: bool = False) -> str:
    """Build a contradiction-judge reply from verdict labels."""
    body = json.dumps({"verdicts": [{"verdict": label} for label in labels]})
    return f"```json\n{body}\n```" if fenced else body


def missed_json(*tiers: str) -> str:
    """Build an omission-detector reply from importance tiers."""
    return json.dumps({
        "missed_facts": [
            {"fact": f"fact {i}", "value": tier, "reason": "relevant"}
            for i, tier in enumerate(tiers)
        ]
    })


# ── Fixtures ────────────────────────────────────────────────────

@pytest.fixture
def config() -> GroundCheckConfig:
    """Default test config (audit file disabled)."""
    return GroundCheckConfig()


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def grounding_document() -> str:
    return (
        "Paris is the capital of France.\n"
        "The city has a population of approximately 2.1 million people.\n"
        "The Louvre Museum in Paris houses the Mona Lisa.\n"
    )


@pytest.fixture
def transport_error() -> TransportError:
    return TransportError("connection refused", model=ENTAILMENT_MODEL)
