"""
Model pricing and token estimation.

Prices are USD per million tokens. Unknown ``provider/model`` keys fall back
to the default entry.
"""

import math
from typing import Optional

from quillsmith.services.llm.models import CostInfo, ModelOptions


MODEL_PRICING: dict[str, dict[str, float]] = {
    "openai/gpt-4o-mini": {"input": 0.15, "output": 0.6},
    "openai/gpt-4o": {"input": 2.5, "output": 10.0},
    "anthropic/claude-3-5-haiku": {"input": 1.0, "output": 5.0},
    "anthropic/claude-3-5-sonnet": {"input": 3.0, "output": 15.0},
    "google/gemini-1.5-flash": {"input": 0.075, "output": 0.3},
    "google/gemini-1.5-pro": {"input": 1.25, "output": 5.0},
    "groq/llama-3.1-70b": {"input": 0.59, "output": 0.79},
    "groq/llama-3.1-8b": {"input": 0.05, "output": 0.08},
    "deepinfra/llama-3.1-70b": {"input": 0.23, "output": 0.4},
    "deepinfra/deepseek-chat": {"input": 0.14, "output": 0.28},
}

DEFAULT_PRICING_KEY = "openai/gpt-4o-mini"

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate token count (rough: 1 token ~ 4 chars)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def get_pricing(options: Optional[ModelOptions] = None) -> dict[str, float]:
    key = options.key if options else DEFAULT_PRICING_KEY
    return MODEL_PRICING.get(key, MODEL_PRICING[DEFAULT_PRICING_KEY])


def calculate_cost(
    input_tokens: int,
    output_tokens: int,
    options: Optional[ModelOptions] = None,
) -> float:
    """Cost in USD for the given token counts."""
    pricing = get_pricing(options)
    return (
        input_tokens * pricing["input"] + output_tokens * pricing["output"]
    ) / 1_000_000


def build_cost_info(
    prompt: str,
    response: str,
    options: Optional[ModelOptions] = None,
    input_tokens: Optional[int] = None,
    output_tokens: Optional[int] = None,
) -> CostInfo:
    """
    Build a CostInfo for one completion call.

    Token counts reported by the backend take precedence over estimates.
    """
    options = options or ModelOptions()
    if not input_tokens:
        input_tokens = estimate_tokens(prompt)
    if not output_tokens:
        output_tokens = estimate_tokens(response)
    return CostInfo(
        provider=options.provider or "default",
        model=options.model or "default",
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_cost=calculate_cost(input_tokens, output_tokens, options),
    )
