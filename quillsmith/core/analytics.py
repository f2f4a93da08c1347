"""
Cost and ROI analytics over the content database.
"""

from typing import Optional

from pydantic import Field

from quillsmith.storage.content_store import normalize_path
from quillsmith.storage.models import CamelModel, ContentDatabase, ContentEntry


class CostTotals(CamelModel):
    review: float = 0.0
    improvement: float = 0.0
    generation: float = 0.0
    total: float = 0.0


class CostSummary(CamelModel):
    """Spend per category and per document."""

    total_costs: CostTotals = Field(default_factory=CostTotals)
    costs_by_content: dict[str, float] = Field(default_factory=dict)
    average_cost_per_quality_point: float = 0.0
    total_operations: int = 0


class IterationEfficiency(CamelModel):
    iteration: int
    cost: float
    quality_gain: float
    efficiency: float


class ContentEfficiency(CamelModel):
    path: str
    investment: float
    quality_gain: float
    efficiency: float
    iterations: int


class DiminishingReturns(CamelModel):
    path: str
    iteration_efficiency: list[IterationEfficiency] = Field(default_factory=list)


class ROIAnalysis(CamelModel):
    """Quality gained per unit of improvement spend."""

    total_investment: float = 0.0
    total_quality_gain: float = 0.0
    average_cost_per_quality_point: float = 0.0
    content_efficiency: list[ContentEfficiency] = Field(default_factory=list)
    diminishing_returns: list[DiminishingReturns] = Field(default_factory=list)


def _select_entries(database: ContentDatabase, path: Optional[str]) -> list[ContentEntry]:
    if path is None:
        return list(database.entries.values())
    entry = database.entries.get(normalize_path(path))
    return [entry] if entry else []


def get_cost_summary(database: ContentDatabase, path: Optional[str] = None) -> CostSummary:
    """
    Aggregate spend across all documents, or one document.

    The average cost per quality point only counts improvements with a
    positive quality delta; every cost still counts toward the totals.
    """
    summary = CostSummary()
    improvement_spend = 0.0
    positive_gain = 0.0

    for entry in _select_entries(database, path):
        accounting = entry.cost_accounting
        if accounting is None:
            continue
        summary.total_costs.review += accounting.review_costs
        summary.total_costs.improvement += accounting.improvement_costs
        summary.total_costs.generation += accounting.generation_costs
        summary.costs_by_content[entry.path] = accounting.total_cost
        summary.total_operations += len(accounting.operation_history)

        for history in entry.review_history:
            metrics = history.improvement_metrics
            if metrics is None or metrics.quality_delta <= 0:
                continue
            positive_gain += metrics.quality_delta
            improvement_spend += history.cost_info.cost if history.cost_info else 0.0

    totals = summary.total_costs
    totals.total = totals.review + totals.improvement + totals.generation
    if positive_gain > 0:
        summary.average_cost_per_quality_point = improvement_spend / positive_gain
    return summary


def get_roi_analysis(database: ContentDatabase) -> ROIAnalysis:
    """
    Rank documents by improvement spend per quality point, best value first.

    Documents improved two or more times are listed with per-iteration
    efficiency for diminishing-returns inspection.
    """
    analysis = ROIAnalysis(
        average_cost_per_quality_point=get_cost_summary(database).average_cost_per_quality_point
    )

    for path, entry in database.entries.items():
        accounting = entry.cost_accounting
        if accounting is None or accounting.improvement_costs <= 0:
            continue

        investment = accounting.improvement_costs
        analysis.total_investment += investment

        quality_gain = 0.0
        iterations: list[IterationEfficiency] = []
        for history in entry.review_history:
            metrics = history.improvement_metrics
            if metrics is None:
                continue
            quality_gain += metrics.quality_delta
            iterations.append(
                IterationEfficiency(
                    iteration=metrics.iteration_number,
                    cost=history.cost_info.cost if history.cost_info else 0.0,
                    quality_gain=metrics.quality_delta,
                    efficiency=metrics.cost_per_quality_point,
                )
            )
        analysis.total_quality_gain += quality_gain

        if quality_gain > 0:
            analysis.content_efficiency.append(
                ContentEfficiency(
                    path=path,
                    investment=investment,
                    quality_gain=quality_gain,
                    efficiency=investment / quality_gain,
                    iterations=entry.improvement_iterations,
                )
            )

        if entry.improvement_iterations >= 2:
            analysis.diminishing_returns.append(
                DiminishingReturns(path=path, iteration_efficiency=iterations)
            )

    analysis.content_efficiency.sort(key=lambda c: c.efficiency)
    return analysis
