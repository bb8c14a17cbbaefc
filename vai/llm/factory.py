"""LLM provider factory.

Builds the disambiguation provider from the ``DISAMBIGUATION``
provider:model setting.
"""

import logging

from vai.config import ProviderConfig, Settings, get_settings
from vai.llm.anthropic_provider import AnthropicProvider
from vai.llm.base import LLMProvider
from vai.llm.exceptions import UnsupportedProviderError
from vai.llm.gemini_provider import GeminiProvider
from vai.llm.logging_provider import LoggingProvider
from vai.llm.openai_provider import OpenAIProvider
from vai.observability.hooks import ObservabilityHook

logger = logging.getLogger(__name__)


def _api_key_for(provider: str, settings: Settings) -> str:
    return {
        "anthropic": settings.anthropic_api_key,
        "openai": settings.openai_api_key,
        "gemini": settings.gemini_api_key,
    }.get(provider, "")


def create_provider(
    config: ProviderConfig,
    settings: Settings | None = None,
    hook: ObservabilityHook | None = None,
) -> LLMProvider:
    """Create an LLM provider from a ProviderConfig.

    Args:
        config: Parsed provider configuration with provider type and model.
        settings: Settings to read API keys from (defaults to global).
        hook: Observability hook for call events when call logging is on.

    Returns:
        Configured LLMProvider instance.

    Raises:
        UnsupportedProviderError: If provider type is not supported.
    """
    settings = settings or get_settings()

    if config.provider == "anthropic":
        provider: LLMProvider = AnthropicProvider(
            api_key=settings.anthropic_api_key,
            default_model=config.model,
        )
    elif config.provider == "openai":
        provider = OpenAIProvider(
            api_key=settings.openai_api_key,
            default_model=config.model,
            base_url=settings.openai_base_url,
        )
    elif config.provider == "gemini":
        provider = GeminiProvider(
            api_key=settings.gemini_api_key,
            default_model=config.model,
            timeout=settings.fallback_timeout,
        )
    else:
        raise UnsupportedProviderError(f"Provider '{config.provider}' is not supported")

    # Wrap with logging if enabled
    if settings.log_llm_calls:
        provider = LoggingProvider(provider, hook)

    return provider


def get_disambiguation_provider(
    settings: Settings | None = None,
    hook: ObservabilityHook | None = None,
) -> LLMProvider | None:
    """Get the provider configured for disambiguation, if any.

    Uses the DISAMBIGUATION env var (format: provider:model).

    Returns:
        LLMProvider, or None when the fallback is disabled or the
        provider's API key is missing. OpenAI-compatible endpoints with a
        custom base URL may run without a key.
    """
    settings = settings or get_settings()
    config = settings.disambiguation_config
    if config is None:
        return None

    if not _api_key_for(config.provider, settings) and not (
        config.provider == "openai" and settings.openai_base_url
    ):
        logger.warning(
            f"Disambiguation provider '{config.provider}' has no API key; "
            f"fallback disabled"
        )
        return None

    return create_provider(config, settings, hook)
