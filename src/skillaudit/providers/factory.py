"""Provider construction from command-line settings."""

import logging
import os
from urllib.parse import urlsplit

from skillaudit.config import Config, ProviderSettings
from skillaudit.exceptions import (
    InvalidEndpointError,
    MissingCredentialError,
    UnsupportedProviderError,
)
from skillaudit.providers import anthropic, ollama, openai
from skillaudit.providers.anthropic import AnthropicProvider
from skillaudit.providers.base import AnalysisProvider
from skillaudit.providers.chat import LLMTransport
from skillaudit.providers.ollama import OllamaProvider
from skillaudit.providers.openai import OpenAIProvider
from skillaudit.providers.scaffold import ScaffoldProvider

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("scaffold", "openai", "anthropic", "ollama")


def build_provider(
    settings: ProviderSettings,
    config: Config,
    *,
    transport: LLMTransport | None = None,
) -> AnalysisProvider:
    """Build the backend named by ``settings``.

    Credentials are read from the environment here so that a missing key
    fails the run before any file is touched.
    """
    name = settings.name.strip().lower()
    if name not in SUPPORTED_PROVIDERS:
        raise UnsupportedProviderError(settings.name, SUPPORTED_PROVIDERS)

    if name == "scaffold":
        return ScaffoldProvider()

    if settings.endpoint is not None:
        _check_endpoint(settings.endpoint, name)

    if name == "ollama":
        provider: AnalysisProvider = OllamaProvider(
            endpoint=settings.endpoint or ollama.DEFAULT_ENDPOINT,
            model=settings.model or ollama.DEFAULT_MODEL,
            timeout_s=config.llm_timeout_s,
            transport=transport,
        )
    elif name == "anthropic":
        provider = AnthropicProvider(
            api_key=_read_credential(settings.api_key_env or anthropic.DEFAULT_API_KEY_ENV, name),
            endpoint=settings.endpoint or anthropic.DEFAULT_ENDPOINT,
            model=settings.model or anthropic.DEFAULT_MODEL,
            max_output_tokens=config.llm_max_output_tokens,
            timeout_s=config.llm_timeout_s,
            transport=transport,
        )
    else:
        provider = OpenAIProvider(
            api_key=_read_credential(settings.api_key_env or openai.DEFAULT_API_KEY_ENV, name),
            endpoint=settings.endpoint or openai.DEFAULT_ENDPOINT,
            model=settings.model or openai.DEFAULT_MODEL,
            reasoning_effort=settings.reasoning_effort,
            timeout_s=config.llm_timeout_s,
            transport=transport,
        )

    spec = provider.provider_spec()
    logger.debug("Using provider %s (model=%s)", spec.name, spec.model)
    return provider


def _check_endpoint(endpoint: str, provider: str) -> None:
    parts = urlsplit(endpoint)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidEndpointError(endpoint, provider)


def _read_credential(env_var: str, provider: str) -> str:
    value = os.environ.get(env_var, "").strip()
    if not value:
        raise MissingCredentialError(env_var, provider)
    return value
