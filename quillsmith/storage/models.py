"""
Persisted content database models.

Attribute names are snake_case; the JSON file uses camelCase keys.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    """Base model serialising with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ContentStatus(str, Enum):
    """Lifecycle status of a document."""
    NEEDS_REVIEW = "needs_review"
    NEEDS_IMPROVEMENT = "needs_improvement"
    MEETS_TARGETS = "meets_targets"
    # Accepted when loading older databases; never produced.
    IN_PROGRESS = "in_progress"


OperationType = Literal["review", "improve", "generate"]


class QualityDimensions(CamelModel):
    """Scores for the five quality dimensions, each in [0, 10]."""

    readability: float = Field(default=0.0, ge=0, le=10)
    seo_score: float = Field(default=0.0, ge=0, le=10)
    technical_accuracy: float = Field(default=0.0, ge=0, le=10)
    engagement: float = Field(default=0.0, ge=0, le=10)
    content_depth: float = Field(default=0.0, ge=0, le=10)

    def as_list(self) -> list[float]:
        return [
            self.readability,
            self.seo_score,
            self.technical_accuracy,
            self.engagement,
            self.content_depth,
        ]

    def average(self) -> float:
        return sum(self.as_list()) / 5


DEFAULT_TARGET_SCORES = QualityDimensions(
    readability=8.0,
    seo_score=8.5,
    technical_accuracy=9.0,
    engagement=8.0,
    content_depth=8.5,
)


class OperationCostInfo(CamelModel):
    """Cost of one review/improve/generate operation on a document."""

    operation: OperationType
    cost: float = 0.0
    provider: str = "default"
    model: str = "default"
    input_tokens: int = 0
    output_tokens: int = 0
    timestamp: str = Field(default_factory=utc_now_iso)


class QualityImprovementMetrics(CamelModel):
    """Quality gain bought by one improvement iteration."""

    score_before: float
    score_after: float
    quality_delta: float
    cost_per_quality_point: float
    iteration_number: int

    @classmethod
    def compute(
        cls,
        score_before: float,
        score_after: float,
        cost: float,
        iteration_number: int,
    ) -> "QualityImprovementMetrics":
        delta = score_after - score_before
        return cls(
            score_before=score_before,
            score_after=score_after,
            quality_delta=delta,
            cost_per_quality_point=cost / delta if delta > 0 else 0.0,
            iteration_number=iteration_number,
        )


class ReviewHistoryEntry(CamelModel):
    """One scoring event in a document's history."""

    date: str = Field(default_factory=utc_now_iso)
    scores: QualityDimensions
    improvements: list[str] = Field(default_factory=list)
    cost_info: Optional[OperationCostInfo] = None
    improvement_metrics: Optional[QualityImprovementMetrics] = None


class CostAccounting(CamelModel):
    """Cumulative cost ledger for a document."""

    review_costs: float = 0.0
    improvement_costs: float = 0.0
    generation_costs: float = 0.0
    total_cost: float = 0.0
    operation_history: list[OperationCostInfo] = Field(default_factory=list)
    last_updated: str = Field(default_factory=utc_now_iso)

    def record(self, operation: OperationCostInfo) -> None:
        """Append an operation and keep the category totals consistent."""
        self.operation_history.append(operation)
        if operation.operation == "review":
            self.review_costs += operation.cost
        elif operation.operation == "improve":
            self.improvement_costs += operation.cost
        else:
            self.generation_costs += operation.cost
        self.total_cost = self.review_costs + self.improvement_costs + self.generation_costs
        self.last_updated = utc_now_iso()


class ContentEntry(CamelModel):
    """Persistent record for one document."""

    path: str
    current_scores: QualityDimensions = Field(default_factory=QualityDimensions)
    target_scores: QualityDimensions = Field(
        default_factory=lambda: DEFAULT_TARGET_SCORES.model_copy()
    )
    last_review_date: str = Field(default_factory=utc_now_iso)
    status: ContentStatus = ContentStatus.NEEDS_REVIEW
    improvement_iterations: int = Field(default=0, ge=0)
    review_history: list[ReviewHistoryEntry] = Field(default_factory=list)
    cost_accounting: Optional[CostAccounting] = None

    @classmethod
    def new(cls, path: str) -> "ContentEntry":
        """A freshly discovered, unscored document."""
        return cls(path=path)

    @property
    def average_score(self) -> float:
        return self.current_scores.average()


class ContentDatabase(CamelModel):
    """The whole persisted store."""

    last_updated: str = Field(default_factory=utc_now_iso)
    entries: dict[str, ContentEntry] = Field(default_factory=dict)
    config: Optional[dict] = None
