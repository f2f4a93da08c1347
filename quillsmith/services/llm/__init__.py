"""Completion services - goose CLI and Ollama backends."""
from .base import CompletionService
from .goose import GooseService
from .ollama import OllamaService
from .models import CompletionResult, CostInfo, ModelOptions
from .classifier import ProviderErrorKind, classify_provider_error

__all__ = [
    "CompletionService",
    "GooseService",
    "OllamaService",
    "CompletionResult",
    "CostInfo",
    "ModelOptions",
    "ProviderErrorKind",
    "classify_provider_error",
    "create_completion_service",
]


def create_completion_service(backend: str | None = None, cwd: str | None = None) -> CompletionService:
    """Build the configured completion backend."""
    from quillsmith.config import get_settings

    backend = backend or get_settings().llm.backend
    if backend == "ollama":
        return OllamaService()
    return GooseService(cwd=cwd)
