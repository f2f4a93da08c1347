"""Tests for cost summaries and ROI analysis."""
import pytest

from quillsmith.core.analytics import get_cost_summary, get_roi_analysis
from quillsmith.storage.models import (
    ContentDatabase,
    ContentEntry,
    CostAccounting,
    OperationCostInfo,
    QualityDimensions,
    QualityImprovementMetrics,
    ReviewHistoryEntry,
)


def improvement(before: float, after: float, spend: float, iteration: int) -> ReviewHistoryEntry:
    return ReviewHistoryEntry(
        scores=QualityDimensions(),
        cost_info=OperationCostInfo(operation="improve", cost=spend),
        improvement_metrics=QualityImprovementMetrics.compute(before, after, spend, iteration),
    )


def entry_with(path: str, operations: list[tuple[str, float]], history=None, iterations=0) -> ContentEntry:
    accounting = CostAccounting()
    for operation, amount in operations:
        accounting.record(OperationCostInfo(operation=operation, cost=amount))
    return ContentEntry(
        path=path,
        cost_accounting=accounting,
        review_history=history or [],
        improvement_iterations=iterations,
    )


@pytest.fixture
def database():
    cheap = entry_with(
        "/site/cheap.md",
        [("review", 0.01), ("improve", 0.02)],
        history=[improvement(6.0, 8.0, 0.02, 1)],
        iterations=1,
    )
    pricey = entry_with(
        "/site/pricey.md",
        [("review", 0.01), ("improve", 0.10), ("improve", 0.10)],
        history=[improvement(5.0, 6.0, 0.10, 1), improvement(6.0, 5.5, 0.10, 2)],
        iterations=2,
    )
    drafted = entry_with("/site/drafted.md", [("generate", 0.05)])
    untouched = ContentEntry(path="/site/untouched.md")
    return ContentDatabase(
        entries={e.path: e for e in (cheap, pricey, drafted, untouched)}
    )


class TestCostSummary:

    def test_totals(self, database):
        summary = get_cost_summary(database)

        assert summary.total_costs.review == pytest.approx(0.02)
        assert summary.total_costs.improvement == pytest.approx(0.22)
        assert summary.total_costs.generation == pytest.approx(0.05)
        assert summary.total_costs.total == pytest.approx(0.29)
        assert summary.total_operations == 6
        assert "/site/untouched.md" not in summary.costs_by_content

    def test_cost_per_point_counts_positive_gains_only(self, database):
        summary = get_cost_summary(database)
        # (0.02 + 0.10) / (2.0 + 1.0); the regression is excluded
        assert summary.average_cost_per_quality_point == pytest.approx(0.04)

    def test_single_document(self, database):
        summary = get_cost_summary(database, "/site/cheap.md")
        assert list(summary.costs_by_content) == ["/site/cheap.md"]
        assert summary.total_costs.total == pytest.approx(0.03)
        assert summary.average_cost_per_quality_point == pytest.approx(0.01)

    def test_unknown_document(self, database):
        summary = get_cost_summary(database, "/site/nope.md")
        assert summary.total_costs.total == 0
        assert summary.costs_by_content == {}

    def test_to_dict_uses_camel_case(self, database):
        data = get_cost_summary(database).to_dict()
        assert set(data) == {"totalCosts", "costsByContent", "averageCostPerQualityPoint", "totalOperations"}
        assert set(data["totalCosts"]) == {"review", "improvement", "generation", "total"}


class TestROIAnalysis:

    def test_ranked_by_efficiency(self, database):
        analysis = get_roi_analysis(database)

        assert analysis.total_investment == pytest.approx(0.22)
        assert analysis.total_quality_gain == pytest.approx(2.5)
        assert [c.path for c in analysis.content_efficiency] == ["/site/cheap.md", "/site/pricey.md"]
        assert analysis.content_efficiency[0].efficiency == pytest.approx(0.01)
        assert analysis.content_efficiency[1].efficiency == pytest.approx(0.4)

    def test_diminishing_returns_needs_two_iterations(self, database):
        analysis = get_roi_analysis(database)

        assert [d.path for d in analysis.diminishing_returns] == ["/site/pricey.md"]
        iterations = analysis.diminishing_returns[0].iteration_efficiency
        assert [i.iteration for i in iterations] == [1, 2]
        assert iterations[1].quality_gain == pytest.approx(-0.5)

    def test_to_dict_nests_camel_case(self, database):
        data = get_roi_analysis(database).to_dict()

        assert set(data["contentEfficiency"][0]) == {"path", "investment", "qualityGain", "efficiency", "iterations"}
        first_iteration = data["diminishingReturns"][0]["iterationEfficiency"][0]
        assert set(first_iteration) == {"iteration", "cost", "qualityGain", "efficiency"}

    def test_empty_database(self):
        analysis = get_roi_analysis(ContentDatabase())
        assert analysis.total_investment == 0
        assert analysis.content_efficiency == []
        assert analysis.to_dict()["diminishingReturns"] == []
