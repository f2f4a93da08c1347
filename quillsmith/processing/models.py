"""
Content processing models.
"""

from dataclasses import dataclass, field
from typing import Optional
import hashlib

from quillsmith.services.llm.models import CostInfo
from quillsmith.storage.models import QualityDimensions


# Dimension keys as they appear in prompts, analysis maps and the store
DIMENSIONS = (
    "readability",
    "seoScore",
    "technicalAccuracy",
    "engagement",
    "contentDepth",
)

# camelCase dimension key -> QualityDimensions attribute
DIMENSION_FIELDS = {
    "readability": "readability",
    "seoScore": "seo_score",
    "technicalAccuracy": "technical_accuracy",
    "engagement": "engagement",
    "contentDepth": "content_depth",
}


@dataclass
class ContentChunk:
    """A contiguous slice of a document's lines."""

    id: str
    content: str
    start_line: int
    end_line: int
    headers: list[str] = field(default_factory=list)
    preserve_frontmatter: bool = False
    character_count: int = 0
    is_first: bool = False
    is_last: bool = False

    def __post_init__(self):
        if not self.id:
            self.id = self._generate_id()
        if not self.character_count:
            self.character_count = len(self.content)

    def _generate_id(self) -> str:
        content_hash = hashlib.sha256(
            f"{self.start_line}:{self.content[:100]}".encode()
        ).hexdigest()[:12]
        return f"chunk_{content_hash}"


@dataclass
class DimensionScore:
    """Parsed result of one dimension prompt."""

    score: float
    reasoning: str
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "reasoning": self.reasoning,
            "suggestions": list(self.suggestions),
        }


@dataclass
class DimensionAnalysis:
    """Reasoning and suggestions for one dimension."""

    reasoning: str
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"reasoning": self.reasoning, "suggestions": list(self.suggestions)}


@dataclass
class ScoringResult:
    """Scores and analysis for all five dimensions of a document."""

    scores: QualityDimensions
    analysis: dict[str, DimensionAnalysis] = field(default_factory=dict)
    total_cost: float = 0.0
    cost_breakdown: dict[str, CostInfo] = field(default_factory=dict)
    cost_info: Optional[CostInfo] = None

    def all_suggestions(self) -> list[str]:
        """Suggestions from every dimension, in dimension order."""
        suggestions: list[str] = []
        for key in DIMENSIONS:
            analysis = self.analysis.get(key)
            if analysis:
                suggestions.extend(analysis.suggestions)
        return suggestions

    def analysis_dict(self) -> dict:
        """Scores plus per-dimension analysis, keyed the way prompts expect."""
        scores = self.scores.to_dict()
        return {
            key: {
                "score": scores.get(key),
                **(self.analysis[key].to_dict() if key in self.analysis else {}),
            }
            for key in DIMENSIONS
        }

    def to_dict(self) -> dict:
        return {
            "scores": self.scores.to_dict(),
            "analysis": {k: v.to_dict() for k, v in self.analysis.items()},
            "totalCost": self.total_cost,
            "costBreakdown": {k: v.to_dict() for k, v in self.cost_breakdown.items()},
        }


@dataclass
class LengthCheck:
    """Outcome of comparing improved text length to the original."""

    original_length: int
    final_length: int
    ratio: float
    warning: Optional[str] = None
    note: Optional[str] = None


@dataclass
class IntegrityViolation:
    """An advisory finding about improved text."""

    kind: str
    message: str
    severity: str = "warning"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "severity": self.severity}


@dataclass
class ImprovementResult:
    """Improved document text plus cost and diagnostics."""

    content: str
    cost_info: CostInfo
    warnings: list[str] = field(default_factory=list)
    violations: list[IntegrityViolation] = field(default_factory=list)
    chunk_count: int = 1
    model_used: Optional[str] = None
