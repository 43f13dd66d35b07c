"""
GroundCheck Model Access
=========================

Components:
    - client.py:  ChatModel protocol + OpenAI-compatible async transport
    - parsing.py: Fence stripping + schema-validated JSON decoding
"""

from groundcheck.llm.client import ChatModel, OpenAIChatModel
from groundcheck.llm.parsing import ParseResult, decode_payload, parse_response, strip_fence

__all__ = [
    "ChatModel",
    "OpenAIChatModel",
    "ParseResult",
    "decode_payload",
    "parse_response",
    "strip_fence",
]
