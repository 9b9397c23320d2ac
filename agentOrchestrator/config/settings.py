"""Environment-bound configuration objects.

This module provides Pydantic BaseSettings-based configuration loading from .env files.
All settings classes automatically load from environment variables, with
AliasChoices for the env names that have more than one accepted spelling.

Example:
    from agentOrchestrator.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    limit = settings.governance.supervisor_recursion_limit
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


class ModelSettings(BaseSettings):
    """Default model provider, model name and per-provider credentials.

    Runtime options sent with a run request override provider/model/temperature.
    """

    default_provider: str = Field(default="openai", alias="DEFAULT_LLM_PROVIDER")
    default_model: str = Field(default="gpt-4o", alias="DEFAULT_LLM_MODEL")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, alias="DEFAULT_LLM_TEMPERATURE")

    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_BASE_URL", "OPENAI_API_BASE"),
    )
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    anthropic_base_url: Optional[str] = Field(default=None, alias="ANTHROPIC_BASE_URL")
    anthropic_max_tokens: int = Field(default=4096, ge=1, alias="ANTHROPIC_MAX_TOKENS")
    dashscope_api_key: Optional[str] = Field(default=None, alias="DASHSCOPE_API_KEY")
    dashscope_base_url: str = Field(
        default="https://dashscope.aliyuncs.com/compatible-mode/v1",
        alias="DASHSCOPE_BASE_URL",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class GovernanceSettings(BaseSettings):
    """Step limits for graph execution.

    - supervisor_recursion_limit: graph steps per supervisor run (default: 25)
    - dag_recursion_limit: graph steps per DAG run (default: 50)
    - agent_max_iterations: model turns inside one agent node (default: 10)
    """

    supervisor_recursion_limit: int = Field(default=25, ge=2, le=500, alias="SUPERVISOR_RECURSION_LIMIT")
    dag_recursion_limit: int = Field(default=50, ge=2, le=1000, alias="DAG_RECURSION_LIMIT")
    agent_max_iterations: int = Field(default=10, ge=1, le=100, alias="AGENT_MAX_ITERATIONS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class StreamingSettings(BaseSettings):
    """Event normalizer policy.

    Where text stops being "reasoning" and becomes content is a policy
    choice, so each heuristic can be switched off:
    - buffer_inner_text: hold an agent turn's text until the turn resolves
    - discard_reasoning_text: drop held text when the turn calls a tool
    - strip_inline_markup: remove textual tool-call markup from content
    - inline_markup_tags: tag names treated as tool-call markup
    """

    buffer_inner_text: bool = Field(default=True, alias="STREAM_BUFFER_INNER_TEXT")
    discard_reasoning_text: bool = Field(default=True, alias="STREAM_DISCARD_REASONING_TEXT")
    strip_inline_markup: bool = Field(default=True, alias="STREAM_STRIP_INLINE_MARKUP")
    inline_markup_tags: Tuple[str, ...] = Field(
        default=("tool_call", "function_call", "tool_use"),
        alias="STREAM_INLINE_MARKUP_TAGS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class AgentSettings(BaseSettings):
    """Supervisor roster and built-in tool configuration."""

    agents_config_path: Optional[str] = Field(default=None, alias="AGENTS_CONFIG_PATH")
    tavily_api_key: Optional[str] = Field(default=None, alias="TAVILY_API_KEY")
    web_search_timeout: float = Field(default=30.0, gt=0, alias="WEB_SEARCH_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ObservabilitySettings(BaseSettings):
    """Logging configuration.

    - log_level: file handler level name (DEBUG/INFO/...)
    - log_dir / log_to_file: where the timestamped log file goes
    """

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="logs", alias="LOG_DIR")
    log_to_file: bool = Field(default=True, alias="LOG_TO_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Hierarchical structure containing nested settings groups:
    - models: Provider defaults and credentials (ModelSettings)
    - governance: Step limits (GovernanceSettings)
    - streaming: Event normalizer policy (StreamingSettings)
    - agents: Supervisor roster and tool settings (AgentSettings)
    - observability: Logging (ObservabilitySettings)

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    models: ModelSettings = Field(default_factory=ModelSettings)
    governance: GovernanceSettings = Field(default_factory=GovernanceSettings)
    streaming: StreamingSettings = Field(default_factory=StreamingSettings)
    agents: AgentSettings = Field(default_factory=AgentSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance.

    Returns:
        Settings: Cached application settings instance
    """
    return Settings()
