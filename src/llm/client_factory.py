# src/llm/client_factory.py
"""Factory: instantiate the LLM client for the configured provider."""

from __future__ import annotations

import importlib
import logging

from docforge.config.settings import Settings
from docforge.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Provider name -> adapter class path (imported lazily).
_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "docforge.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "openai": "docforge.llm.adapters.openai_adapter.OpenAIAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the adapter registered under ``provider``.

    Args:
        provider: Provider identifier (anthropic, openai).
        model: Model name (e.g. claude-3-haiku-20240307).
        settings: Application settings, used for the API key.
        **kwargs: Extra adapter arguments.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    module_path, class_name = _PROVIDER_REGISTRY[provider].rsplit(".", 1)
    adapter_cls = getattr(importlib.import_module(module_path), class_name)

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    if settings is not None:
        init_kwargs.setdefault("api_key", getattr(settings, f"{provider}_api_key", ""))

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def create_from_settings(settings: Settings, model: str | None = None) -> BaseLLMClient:
    """Build the client for ``settings.llm_provider`` (model override optional)."""
    return create_llm_client(settings.llm_provider, model or settings.llm_model, settings)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter by fully qualified class path."""
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s -> %s", name, class_path)
