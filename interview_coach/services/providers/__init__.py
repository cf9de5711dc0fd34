"""
Provider clients behind the `AIProvider` contract.

- base.py: the contract and transcript helpers
- gemini.py: managed chat session + native JSON mode
- openai.py: REST chat completions + hand-decoded SSE stream
- sse.py: the stream decoder used by openai.py
"""
from interview_coach.core.config import Settings, settings as default_settings
from interview_coach.core.exceptions import ConfigurationError

from .base import AIProvider
from .gemini import GeminiProvider
from .openai import OpenAIProvider


def create_provider(config: Settings = None) -> AIProvider:
    """Build the single configured provider. Called once at process start."""
    config = config or default_settings
    if config.AI_PROVIDER == "gemini":
        return GeminiProvider(api_key=config.GEMINI_API_KEY, model=config.GEMINI_MODEL)
    if config.AI_PROVIDER == "openai":
        return OpenAIProvider(
            api_key=config.OPENAI_API_KEY,
            model=config.OPENAI_MODEL,
            api_url=config.OPENAI_API_URL,
            timeout=config.REQUEST_TIMEOUT_SECONDS,
        )
    raise ConfigurationError(f"Unknown AI_PROVIDER: {config.AI_PROVIDER}")


__all__ = [
    'AIProvider',
    'GeminiProvider',
    'OpenAIProvider',
    'create_provider',
]
