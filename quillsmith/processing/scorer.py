"""
Content quality scoring.

Scores a document on five quality dimensions with one completion request
per dimension and parses the structured replies.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from quillsmith.config import get_settings
from quillsmith.processing.models import (
    DIMENSION_FIELDS,
    DIMENSIONS,
    DimensionAnalysis,
    DimensionScore,
    ScoringResult,
)
from quillsmith.processing.prompts import build_scoring_prompt
from quillsmith.services.llm.base import CompletionService
from quillsmith.services.llm.models import CostInfo, ModelOptions
from quillsmith.storage.models import QualityDimensions
from quillsmith.utils.logging import get_logger

module_logger = get_logger(__name__)

DEFAULT_SCORE = 7.0
DEFAULT_REASONING = "Analysis completed"
DEFAULT_SUGGESTIONS = (
    "Review content structure and clarity",
    "Consider adding more specific examples",
    "Enhance explanation depth where needed",
)

SCORE_LINE = re.compile(r"^SCORE:\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
REASONING_LINE = re.compile(r"^REASONING:\s*(.*)$", re.IGNORECASE)
SUGGESTIONS_LINE = re.compile(r"^SUGGESTIONS:\s*(.*)$", re.IGNORECASE)
NUMERIC_LINE = re.compile(r"^\d+(?:\.\d+)?$")


def _clamp(score: float) -> float:
    return max(0.0, min(10.0, score))


def parse_score_response(
    text: str,
    logger: Optional[logging.Logger] = None,
) -> DimensionScore:
    """
    Parse a ``SCORE:`` / ``REASONING:`` / ``SUGGESTIONS:`` reply.

    Never raises. Unlabelled numeric lines count as the score, ``- `` lines
    as suggestions, and the first long unlabelled line as the reasoning.
    Anything missing falls back to neutral defaults.
    """
    logger = logger or module_logger

    score: Optional[float] = None
    labelled_score = False
    reasoning: Optional[str] = None
    suggestions: list[str] = []

    for raw_line in (text or "").split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        match = SCORE_LINE.match(line)
        if match:
            score = float(match.group(1))
            labelled_score = True
            continue

        match = REASONING_LINE.match(line)
        if match:
            if match.group(1).strip():
                reasoning = match.group(1).strip()
            continue

        match = SUGGESTIONS_LINE.match(line)
        if match:
            inline = match.group(1).strip()
            if inline:
                suggestions.append(inline.lstrip("- ").strip())
            continue

        if line.startswith("- "):
            suggestions.append(line[2:].strip())
            continue

        if NUMERIC_LINE.match(line):
            if not labelled_score:
                score = float(line)
        elif reasoning is None and len(line) > 20:
            reasoning = line

    if score is None:
        logger.warning("No score found in AI response, using default score")
        score = DEFAULT_SCORE
    elif not labelled_score:
        logger.debug("Score parsed from an unlabelled line")

    return DimensionScore(
        score=_clamp(score),
        reasoning=reasoning or DEFAULT_REASONING,
        suggestions=suggestions or list(DEFAULT_SUGGESTIONS),
    )


@dataclass
class ScoringStrategy:
    """Which model scores a dimension."""

    dimension: str
    preferred_model: ModelOptions


class QualityScorer:
    """
    Five-dimension content scorer.

    Transport failures from the completion service propagate and abort the
    whole scoring call; malformed replies degrade to defaults.
    """

    def __init__(
        self,
        service: CompletionService,
        default_model: Optional[ModelOptions] = None,
        logger: Optional[logging.Logger] = None,
    ):
        settings = get_settings()
        self.service = service
        self.default_model = default_model or ModelOptions(
            provider=settings.llm.scoring_provider,
            model=settings.llm.scoring_model,
        )
        self.logger = logger or module_logger

    def default_strategies(self) -> list[ScoringStrategy]:
        return [ScoringStrategy(d, self.default_model) for d in DIMENSIONS]

    def _model_map(self, strategies: Optional[list[ScoringStrategy]]) -> dict[str, ModelOptions]:
        models = {s.dimension: s.preferred_model for s in self.default_strategies()}
        for strategy in strategies or []:
            if strategy.dimension not in models:
                raise ValueError(f"Unknown quality dimension: {strategy.dimension}")
            models[strategy.dimension] = strategy.preferred_model
        return models

    async def score_dimension(
        self,
        dimension: str,
        content: str,
        options: Optional[ModelOptions] = None,
    ) -> tuple[DimensionScore, CostInfo]:
        prompt = build_scoring_prompt(dimension, content)
        try:
            result = await self.service.prompt(prompt, options or self.default_model)
        except Exception as e:
            self.logger.error(f"Scoring failed for dimension {dimension}: {e}")
            raise
        return parse_score_response(result.content, self.logger), result.cost_info

    async def score_content(
        self,
        content: str,
        strategies: Optional[list[ScoringStrategy]] = None,
    ) -> ScoringResult:
        """
        Score a document on every quality dimension.

        Args:
            content: Document text
            strategies: Per-dimension model overrides

        Returns:
            ScoringResult with scores, analysis and accumulated cost

        Raises:
            AIProviderError: If any dimension's request fails
        """
        models = self._model_map(strategies)
        scores: dict[str, float] = {}
        analysis: dict[str, DimensionAnalysis] = {}
        breakdown: dict[str, CostInfo] = {}
        total: Optional[CostInfo] = None

        for dimension in DIMENSIONS:
            parsed, cost_info = await self.score_dimension(
                dimension, content, models[dimension]
            )
            scores[DIMENSION_FIELDS[dimension]] = parsed.score
            analysis[dimension] = DimensionAnalysis(
                reasoning=parsed.reasoning, suggestions=parsed.suggestions
            )
            breakdown[dimension] = cost_info
            total = cost_info if total is None else total + cost_info

        result = ScoringResult(
            scores=QualityDimensions(**scores),
            analysis=analysis,
            total_cost=total.total_cost if total else 0.0,
            cost_breakdown=breakdown,
            cost_info=total,
        )
        self.logger.info(
            f"Scored content: average {result.scores.average():.2f}, "
            f"cost ${result.total_cost:.6f}"
        )
        return result

    async def estimate_cost(
        self,
        content: str,
        strategies: Optional[list[ScoringStrategy]] = None,
    ) -> float:
        """Estimated cost of scoring ``content`` on every dimension."""
        models = self._model_map(strategies)
        total = 0.0
        for dimension in DIMENSIONS:
            prompt = build_scoring_prompt(dimension, content)
            total += await self.service.estimate_cost(prompt, models[dimension])
        return total
