"""LLM provider abstraction layer.

This module provides a unified interface over the remote text-completion
services the disambiguation fallback can use: Anthropic, OpenAI (and
OpenAI-compatible APIs), and Google Gemini.

Quick Start:
    from vai.llm import get_disambiguation_provider, Message

    provider = get_disambiguation_provider()  # None if DISAMBIGUATION=none
    if provider:
        response = await provider.complete(
            messages=[Message.user("Interpret: 'smack the gobbo'")],
        )
        print(response.content)
"""

# Message types
from vai.llm.message_types import Message, MessageRole

# Response types
from vai.llm.response_types import LLMResponse, UsageStats

# Protocol
from vai.llm.base import LLMProvider

# Providers
from vai.llm.anthropic_provider import AnthropicProvider
from vai.llm.gemini_provider import GeminiProvider
from vai.llm.openai_provider import OpenAIProvider
from vai.llm.logging_provider import LoggingProvider

# Factory
from vai.llm.factory import create_provider, get_disambiguation_provider

# Retry utilities
from vai.llm.retry import RetryConfig, with_retry

# Exceptions
from vai.llm.exceptions import (
    AuthenticationError,
    ContentPolicyError,
    ContextLengthError,
    LLMError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    StructuredOutputError,
    UnsupportedProviderError,
)

__all__ = [
    # Message types
    "Message",
    "MessageRole",
    # Response types
    "LLMResponse",
    "UsageStats",
    # Protocol
    "LLMProvider",
    # Providers
    "AnthropicProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "LoggingProvider",
    # Factory
    "create_provider",
    "get_disambiguation_provider",
    # Retry
    "RetryConfig",
    "with_retry",
    # Exceptions
    "LLMError",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitError",
    "AuthenticationError",
    "ContentPolicyError",
    "ContextLengthError",
    "UnsupportedProviderError",
    "StructuredOutputError",
]
