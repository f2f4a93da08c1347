"""
Completion service models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ModelOptions:
    """Provider/model selection for a single completion request."""

    provider: Optional[str] = None
    model: Optional[str] = None

    @property
    def key(self) -> str:
        """Pricing key in ``provider/model`` form."""
        return f"{self.provider or 'unknown'}/{self.model or 'unknown'}"

    def __str__(self) -> str:
        return self.key

    @classmethod
    def from_value(cls, value) -> "ModelOptions":
        """Build options from a mapping, an object with provider/model, or a string."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if "/" in value:
                provider, model = value.split("/", 1)
                return cls(provider=provider, model=model)
            return cls(model=value)
        if isinstance(value, dict):
            return cls(provider=value.get("provider"), model=value.get("model"))
        return cls(
            provider=getattr(value, "provider", None),
            model=getattr(value, "model", None),
        )


@dataclass
class CostInfo:
    """Cost and token usage of one or more completion calls."""

    provider: str = "unknown"
    model: str = "unknown"
    input_tokens: int = 0
    output_tokens: int = 0
    total_cost: float = 0.0
    timestamp: str = field(default_factory=utc_now_iso)

    def __add__(self, other: "CostInfo") -> "CostInfo":
        return CostInfo(
            provider=self.provider,
            model=self.model,
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_cost=self.total_cost + other.total_cost,
            timestamp=max(self.timestamp, other.timestamp),
        )

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "model": self.model,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalCost": self.total_cost,
            "timestamp": self.timestamp,
        }


@dataclass
class CompletionResult:
    """Result of a completion request."""

    content: str
    cost_info: CostInfo = field(default_factory=CostInfo)
