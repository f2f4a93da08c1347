"""
Quillsmith Configuration System

Hierarchical configuration with environment variable overrides.
Uses Pydantic Settings for type validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional, Literal, Union
import os

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml


class ModelChoice(BaseModel):
    """A single provider/model pair in a fallback list."""

    provider: Optional[str] = None
    model: Optional[str] = None


def _default_review_models() -> list[ModelChoice]:
    return [
        ModelChoice(provider="tetrate", model="gpt-4o-mini"),
        ModelChoice(provider="google", model="gemini-1.5-flash-8b"),
    ]


def _default_improve_models() -> list[ModelChoice]:
    return [
        ModelChoice(provider="tetrate", model="claude-3-5-sonnet-latest"),
        ModelChoice(provider="google", model="gemini-1.5-flash-8b"),
    ]


class ModelsConfig(BaseSettings):
    """Per-task model fallback lists, tried in order."""

    review: list[ModelChoice] = Field(default_factory=_default_review_models)
    improve: list[ModelChoice] = Field(default_factory=_default_improve_models)
    generate: list[ModelChoice] = Field(default_factory=_default_improve_models)

    model_config = SettingsConfigDict(env_prefix="QUILLSMITH_MODELS_")

    @field_validator("review", "improve", "generate", mode="before")
    @classmethod
    def _coerce_model_list(cls, value: Union[str, dict, list, None]):
        # Accept "model", "provider/model", a single mapping, or a list of either
        if value is None:
            return []
        if isinstance(value, (str, dict)):
            value = [value]
        coerced = []
        for item in value:
            if isinstance(item, str):
                if "/" in item:
                    provider, model = item.split("/", 1)
                    coerced.append({"provider": provider, "model": model})
                else:
                    coerced.append({"model": item})
            else:
                coerced.append(item)
        return coerced


class LLMConfig(BaseSettings):
    """Completion backend configuration."""

    backend: Literal["goose", "ollama"] = "goose"
    goose_command: str = "goose"
    base_url: str = "http://localhost:11434"
    timeout: float = 300.0
    verify_ssl: bool = True
    default_provider: Optional[str] = None
    default_model: Optional[str] = None
    scoring_provider: str = "google"
    scoring_model: str = "gemini-1.5-flash"

    model_config = SettingsConfigDict(env_prefix="QUILLSMITH_LLM_")


class ChunkingConfig(BaseSettings):
    """Large-document chunking configuration (sizes in characters)."""

    max_chunk_size: int = 20000
    min_chunk_size: int = 5000
    split_on_headers: bool = True
    header_levels: list[int] = Field(default_factory=lambda: [1, 2, 3])
    overlap_lines: int = 2

    model_config = SettingsConfigDict(env_prefix="QUILLSMITH_CHUNKING_")


class PipelineConfig(BaseSettings):
    """Pipeline, store and batching configuration."""

    root_dir: str = "."
    db_path: str = ".quillsmith/content-db.json"
    content_collection: Literal["astro", "nextjs", "gatsby", "custom"] = "astro"
    custom_base_dir: str = "content"
    custom_include: list[str] = Field(default_factory=lambda: ["**/*.md"])
    custom_exclude: list[str] = Field(default_factory=list)
    review_batch_size: int = 5
    improve_batch_size: int = 3
    review_batch_pause: float = 1.0  # seconds between review groups
    improve_batch_pause: float = 2.0  # seconds between improvement groups

    model_config = SettingsConfigDict(env_prefix="QUILLSMITH_PIPELINE_")


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    json_format: bool = False
    file: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="QUILLSMITH_LOG_")


class Settings(BaseSettings):
    """
    Main application settings.

    Configuration priority (highest to lowest):
    1. Environment variables (QUILLSMITH_*)
    2. .env file
    3. Config YAML file
    4. Default values
    """

    app_name: str = "Quillsmith"
    version: str = "1.0.0"
    environment: Literal["development", "production", "test"] = "development"

    # Sub-configurations
    llm: LLMConfig = Field(default_factory=LLMConfig)
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="QUILLSMITH_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        if not path.exists():
            return cls()

        with open(path, "r") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration with proper precedence.

    Args:
        config_path: Optional path to YAML config file.
                    If not provided, checks QUILLSMITH_CONFIG_PATH env var,
                    then config/<environment>.yaml, then config/default.yaml
    """
    if config_path is None:
        config_path = os.environ.get("QUILLSMITH_CONFIG_PATH")

    if config_path is None:
        env = os.environ.get("QUILLSMITH_ENVIRONMENT", "development")
        possible_paths = [
            Path(f"config/{env}.yaml"),
            Path("config/default.yaml"),
        ]
        for p in possible_paths:
            if p.exists():
                config_path = str(p)
                break

    if config_path and Path(config_path).exists():
        settings = Settings.from_yaml(Path(config_path))
    else:
        settings = Settings()

    return settings


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Use this as the primary way to access settings throughout the app.
    Runtime overrides applied via :func:`apply_runtime_overrides` invalidate
    the cache so the next call returns fresh settings.
    """
    settings = load_config()

    if _runtime_overrides:
        settings = _apply_overrides(settings, _runtime_overrides)

    return settings


# ---------------------------------------------------------------------------
# Runtime override support
# ---------------------------------------------------------------------------

_runtime_overrides: dict = {}


def apply_runtime_overrides(section: str, updates: dict) -> None:
    """Apply runtime config overrides and invalidate the settings cache.

    Args:
        section: Top-level config key, e.g. ``"pipeline"``, ``"llm"``.
        updates: Dict of field -> value overrides for that section.
    """
    if section not in _runtime_overrides:
        _runtime_overrides[section] = {}
    _runtime_overrides[section].update(updates)
    get_settings.cache_clear()


def _apply_overrides(settings: Settings, overrides: dict) -> Settings:
    """Return a copy of *settings* with *overrides* applied."""
    top_updates: dict = {}
    for section, values in overrides.items():
        sub_config = getattr(settings, section, None)
        if sub_config is None or not hasattr(sub_config, "model_copy"):
            continue
        # Re-validate so string/dict model lists are coerced like YAML input
        merged = {**sub_config.model_dump(), **values}
        top_updates[section] = type(sub_config).model_validate(merged)
    if top_updates:
        return settings.model_copy(update=top_updates)
    return settings


def clear_settings_cache():
    """Clear the settings cache and runtime overrides."""
    _runtime_overrides.clear()
    get_settings.cache_clear()
