"""Application configuration using pydantic-settings."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


ProviderType = Literal["anthropic", "openai", "gemini"]
GameSystem = Literal["pf2e", "pf1"]

VALID_PROVIDERS: tuple[str, ...] = ("anthropic", "openai", "gemini")

# Values of DISAMBIGUATION that turn the fallback off.
DISABLED_VALUES = frozenset({"", "none", "off", "disabled"})


@dataclass
class ProviderConfig:
    """Parsed provider:model configuration."""

    provider: ProviderType
    model: str


def parse_provider_config(value: str, default_provider: ProviderType = "openai") -> ProviderConfig:
    """Parse 'provider:model' format into ProviderConfig.

    Args:
        value: String in format 'provider:model' or just 'model'.
        default_provider: Provider to use if only model is specified.

    Returns:
        ProviderConfig with provider and model.

    Examples:
        >>> parse_provider_config("anthropic:claude-3-5-haiku-latest")
        ProviderConfig(provider='anthropic', model='claude-3-5-haiku-latest')

        >>> parse_provider_config("gemini:gemini-1.5-flash")
        ProviderConfig(provider='gemini', model='gemini-1.5-flash')

        >>> parse_provider_config("gpt-4o-mini")  # No provider prefix
        ProviderConfig(provider='openai', model='gpt-4o-mini')
    """
    if ":" in value:
        first_part = value.split(":")[0]
        if first_part in VALID_PROVIDERS:
            model = value[len(first_part) + 1 :]
            return ProviderConfig(provider=first_part, model=model)  # type: ignore[arg-type]

    return ProviderConfig(provider=default_provider, model=value)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: str | None = None  # Custom endpoint for OpenAI-compatible APIs
    gemini_api_key: str = ""

    # ==========================================================================
    # Disambiguation Fallback (provider:model format)
    # ==========================================================================
    # Format: "provider:model" where provider is one of anthropic, openai,
    # gemini. "none" disables the fallback.
    #
    # Examples:
    #   DISAMBIGUATION=openai:gpt-4o-mini
    #   DISAMBIGUATION=anthropic:claude-3-5-haiku-latest
    #   DISAMBIGUATION=gemini:gemini-1.5-flash

    disambiguation: str = "none"
    fallback_timeout: float = Field(default=10.0, gt=0)  # Seconds
    fallback_max_retries: int = Field(default=1, ge=0)
    context_aware_fallback: bool = True

    # ==========================================================================
    # Resolution
    # ==========================================================================
    confidence_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    learning_enabled: bool = True
    learning_history_size: int = Field(default=100, gt=0)
    context_history_size: int = Field(default=50, gt=0)
    game_system: GameSystem = "pf2e"

    # Debug
    debug: bool = False
    log_llm_calls: bool = False

    # ==========================================================================
    # Parsed Configuration Properties
    # ==========================================================================

    @property
    def disambiguation_enabled(self) -> bool:
        """Whether a fallback provider is configured at all."""
        return self.disambiguation.strip().lower() not in DISABLED_VALUES

    @property
    def disambiguation_config(self) -> ProviderConfig | None:
        """Get parsed disambiguation provider config, or None if disabled."""
        if not self.disambiguation_enabled:
            return None
        return parse_provider_config(self.disambiguation.strip())


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience alias
settings = get_settings()
