from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import HttpClient, LlmGatewayError, call, chat

__all__ = ["HttpClient", "LlmGatewayError", "call", "chat"]
