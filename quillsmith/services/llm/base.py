"""
Abstract base class for completion services.
"""

from abc import ABC, abstractmethod
from typing import Optional

from quillsmith.services.llm.models import CompletionResult, ModelOptions
from quillsmith.services.llm.pricing import calculate_cost, estimate_tokens


class CompletionService(ABC):
    """
    Abstract interface for text-completion providers.

    Every backend exposes the same single capability: send a prompt, get
    text and the cost of producing it.
    """

    @abstractmethod
    async def prompt(
        self,
        text: str,
        options: Optional[ModelOptions] = None,
    ) -> CompletionResult:
        """
        Send a prompt to the provider.

        Args:
            text: Full prompt text
            options: Provider/model selection; backend defaults when omitted

        Returns:
            CompletionResult with response text and cost info

        Raises:
            AIProviderError: If the provider fails or cannot be reached
        """
        pass

    async def estimate_cost(
        self,
        text: str,
        options: Optional[ModelOptions] = None,
    ) -> float:
        """
        Estimate the cost of a prompt before sending it.

        Assumes the response is twice the prompt length, capped at 4000 tokens.
        """
        input_tokens = estimate_tokens(text)
        output_tokens = min(input_tokens * 2, 4000)
        return calculate_cost(input_tokens, output_tokens, options)

    async def health_check(self) -> bool:
        """
        Check if the provider is available.

        Returns:
            True if service is healthy
        """
        return True

    async def close(self) -> None:
        """Release any resources held by the backend."""
        return None
