"""Provider endpoints, known models and the default provider configuration."""

from autoreply.domain.models import Provider, ProviderConfig

AI_ENDPOINTS: dict[Provider, str] = {
    Provider.OPENAI: "https://api.openai.com/v1/chat/completions",
    Provider.ANTHROPIC: "https://api.anthropic.com/v1/messages",
}

AI_MODELS: dict[Provider, list[str]] = {
    Provider.OPENAI: ["gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "o3-mini"],
    Provider.ANTHROPIC: [
        "claude-sonnet-4-20250514",
        "claude-haiku-4-5-20251001",
        "claude-opus-4-20250514",
    ],
}

DEFAULT_PROVIDER_CONFIG = ProviderConfig(provider=Provider.OPENAI, api_key="", model="gpt-4o-mini")


def default_model(provider: Provider) -> str:
    """First catalog model for a provider; gpt-4o-mini stays the OpenAI default."""
    if provider is Provider.OPENAI:
        return DEFAULT_PROVIDER_CONFIG.model
    return AI_MODELS[provider][0]


def is_known_model(provider: Provider, model: str) -> bool:
    """Custom model identifiers are allowed; this only reports catalog membership."""
    return model in AI_MODELS.get(provider, [])
