"""
Chat Model Transport
=====================

Both judges talk to models through the `ChatModel` protocol:

    await chat(model, messages) -> completion text

`OpenAIChatModel` implements it over the OpenAI Python SDK, pointed at
any OpenAI-compatible endpoint. The default endpoint is a local Ollama
server (`/v1`), which hosts both the narrow entailment classifier and
the general judge model.

No retries: the SDK's built-in retry loop is disabled so a transient
failure surfaces immediately as TransportError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from groundcheck.config import ModelConfig
from groundcheck.errors import TransportError

logger = logging.getLogger("groundcheck.llm.client")


Message = dict[str, str]


class ChatModel(Protocol):
    """Minimal async chat-completion interface."""

    async def chat(self, model: str, messages: list[Message]) -> str:
        ...

    async def aclose(self) -> None:
        ...


class OpenAIChatModel:
    """
    Chat transport over `openai.AsyncOpenAI`.

    Usage:
        client = OpenAIChatModel.from_config(cfg.model)
        text = await client.chat("bespoke-minicheck", [{"role": "user", "content": "..."}])

    Args:
        base_url: OpenAI-compatible endpoint.
        api_key: API key for the endpoint.
        temperature: Sampling temperature for every call.
        timeout: Per-request timeout in seconds (None = no timeout).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434/v1",
        api_key: str = "ollama",
        temperature: float = 0.0,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.temperature = temperature
        self.timeout = timeout
        self._client = None
        self._client_loop = None

    @classmethod
    def from_config(cls, config: ModelConfig) -> "OpenAIChatModel":
        return cls(
            base_url=config.base_url,
            api_key=config.api_key,
            temperature=config.temperature,
            timeout=config.timeout,
        )

    def _get_client(self):
        """Lazy-initialize the async OpenAI client for the running event loop."""
        loop = asyncio.get_running_loop()
        if self._client is not None and self._client_loop is not loop:
            # Pooled connections are bound to the loop that opened them
            logger.debug("Event loop changed, creating a new OpenAI client")
            self._client = None

        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
            self._client_loop = loop
        return self._client

    async def chat(self, model: str, messages: list[Message]) -> str:
        """
        Send one chat completion request and return the reply text.

        Raises:
            TransportError: On any connection, status, or timeout failure.
        """
        import openai

        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.temperature,
            )
        except openai.APIError as e:
            logger.error(f"Chat call to {model} failed: {e}")
            raise TransportError(f"Chat call to {model} failed: {e}", model=model) from e

        if not response.choices:
            raise TransportError(f"Chat call to {model} returned no choices", model=model)
        return response.choices[0].message.content or ""

    async def aclose(self) -> None:
        """Close the underlying HTTP client (on the loop that created it)."""
        client, loop = self._client, self._client_loop
        self._client = None
        self._client_loop = None
        if client is not None and loop is asyncio.get_running_loop():
            await client.close()
