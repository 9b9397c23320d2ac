"""Chat model construction from runtime options and environment settings.

Runtime options sent with a run (provider, model, temperature) override the
defaults from ModelSettings. OpenAI-compatible providers go through
ChatOpenAI; Anthropic goes through ChatAnthropic.

Example:
    >>> model = build_chat_model(ModelOptions(provider="dashscope", model="qwen-plus"))
"""

from __future__ import annotations

from typing import Dict, Literal, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ConfigDict, Field

from agentOrchestrator.config import ModelSettings, get_settings
from agentOrchestrator.utils.error_handler import ConfigurationError

Provider = Literal["openai", "anthropic", "dashscope"]


class ModelOptions(BaseModel):
    """Per-run model overrides. Unset fields fall back to settings."""

    model_config = ConfigDict(populate_by_name=True)

    provider: Optional[Provider] = None
    model: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, ge=1, alias="maxTokens")


def _openai_kwargs(model: str, api_key: Optional[str], base_url: Optional[str], temperature: float) -> Dict[str, object]:
    if not api_key:
        raise ConfigurationError(
            f"Missing API key for model {model}",
            user_message="Model provider API key is not configured, set it in .env",
        )
    kwargs: Dict[str, object] = {"model": model, "api_key": api_key, "temperature": temperature, "streaming": True}
    if base_url:
        kwargs["base_url"] = base_url
    return kwargs


def build_chat_model(options: Optional[ModelOptions] = None, settings: Optional[ModelSettings] = None) -> BaseChatModel:
    """Create the chat model for one run.

    Raises:
        ConfigurationError: Unknown provider or missing API key
    """
    options = options or ModelOptions()
    settings = settings or get_settings().models

    provider = options.provider or settings.default_provider
    model = options.model or settings.default_model
    temperature = settings.temperature if options.temperature is None else options.temperature

    if provider == "openai":
        kwargs = _openai_kwargs(model, settings.openai_api_key, settings.openai_base_url, temperature)
    elif provider == "dashscope":
        kwargs = _openai_kwargs(model, settings.dashscope_api_key, settings.dashscope_base_url, temperature)
    elif provider == "anthropic":
        return _build_anthropic(model, temperature, options.max_tokens, settings)
    else:
        raise ConfigurationError(f"Unsupported model provider: {provider}")

    if options.max_tokens:
        kwargs["max_tokens"] = options.max_tokens
    return ChatOpenAI(**kwargs)


def _build_anthropic(model: str, temperature: float, max_tokens: Optional[int], settings: ModelSettings) -> BaseChatModel:
    if not settings.anthropic_api_key:
        raise ConfigurationError(
            f"Missing API key for model {model}",
            user_message="ANTHROPIC_API_KEY is not configured, set it in .env",
        )
    kwargs: Dict[str, object] = {
        "model": model,
        "api_key": settings.anthropic_api_key,
        "temperature": temperature,
        "max_tokens": max_tokens or settings.anthropic_max_tokens,
        "streaming": True,
    }
    if settings.anthropic_base_url:
        kwargs["base_url"] = settings.anthropic_base_url
    return ChatAnthropic(**kwargs)
