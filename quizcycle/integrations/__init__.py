"""Clients for external services."""

from .llm_client import ChatMessage, LLMClient, extract_json

__all__ = ["ChatMessage", "LLMClient", "extract_json"]
