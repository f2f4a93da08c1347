"""
Sequential model fallback.

Tries an operation against each model of an ordered list until one
succeeds. Only recoverable failures move on to the next model.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from quillsmith.services.llm.classifier import is_recoverable
from quillsmith.services.llm.models import ModelOptions
from quillsmith.utils.logging import get_logger

module_logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class FallbackConfig:
    """Configuration for fallback behavior."""

    is_recoverable: Callable[[Exception], bool] = is_recoverable
    exceptions: tuple[type[Exception], ...] = field(default_factory=lambda: (Exception,))


async def run_with_fallback(
    models: Sequence[ModelOptions],
    attempt: Callable[[ModelOptions], Awaitable[T]],
    config: Optional[FallbackConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> T:
    """
    Run ``attempt`` against each model in order.

    Args:
        models: Ordered, non-empty model list
        attempt: Async callable receiving the model to try
        config: Fallback configuration
        logger: Logger for per-attempt messages

    Returns:
        The first successful result

    Raises:
        ValueError: If ``models`` is empty
        Exception: The first non-recoverable error, unchanged
        Exception: The last recoverable error, once every model has failed
    """
    if not models:
        raise ValueError("At least one model must be provided")

    config = config or FallbackConfig()
    logger = logger or module_logger
    last_exception: Optional[Exception] = None

    for index, model in enumerate(models):
        try:
            if index:
                logger.info(f"Trying fallback model {index + 1}/{len(models)}: {model}")
            return await attempt(model)
        except config.exceptions as e:
            last_exception = e

            if not config.is_recoverable(e):
                logger.error(
                    f"Attempt {index + 1}/{len(models)} with {model} failed with a "
                    f"non-recoverable error: {e}"
                )
                raise

            if index < len(models) - 1:
                logger.warning(
                    f"Attempt {index + 1}/{len(models)} with {model} failed: {e}. "
                    f"Trying next model..."
                )
            else:
                logger.error(f"All {len(models)} model(s) failed")

    raise last_exception
