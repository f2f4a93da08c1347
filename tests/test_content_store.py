"""Tests for the JSON content store."""
import asyncio
import json

import pytest
import pytest_asyncio

from quillsmith.services.llm.models import CostInfo
from quillsmith.storage.content_store import ContentStore
from quillsmith.storage.models import ContentStatus, QualityDimensions, ReviewHistoryEntry
from quillsmith.utils.exceptions import EntryNotFoundError, StoreIOError


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "content-db.json"


@pytest.fixture
def doc_path(tmp_path):
    path = tmp_path / "content" / "post.md"
    path.parent.mkdir(parents=True)
    path.write_text("# Post\n", encoding="utf-8")
    return str(path.resolve())


def cost(amount: float) -> CostInfo:
    return CostInfo(provider="google", model="gemini-1.5-flash", input_tokens=100, output_tokens=20, total_cost=amount)


class TestLoadAndSave:
    """Persistence round trips."""

    @pytest.mark.asyncio
    async def test_missing_file_creates_empty_store(self, db_path):
        store = ContentStore(db_path)
        database = await store.load()

        assert database.entries == {}
        assert db_path.exists()
        assert json.loads(db_path.read_text())["entries"] == {}

    @pytest.mark.asyncio
    async def test_invalid_json_is_store_error(self, db_path):
        db_path.parent.mkdir(parents=True)
        db_path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StoreIOError):
            await ContentStore(db_path).load()

    @pytest.mark.asyncio
    async def test_invalid_schema_is_store_error(self, db_path):
        db_path.parent.mkdir(parents=True)
        db_path.write_text(json.dumps({"entries": {"a.md": {"status": "bogus"}}}), encoding="utf-8")

        with pytest.raises(StoreIOError):
            await ContentStore(db_path).load()

    def test_get_data_before_load(self, db_path):
        with pytest.raises(StoreIOError):
            ContentStore(db_path).get_data()

    @pytest.mark.asyncio
    async def test_paths_stored_relative_and_loaded_absolute(self, db_path, doc_path):
        store = ContentStore(db_path)
        await store.load()
        added = await store.add_entries([doc_path])
        assert added == [doc_path]

        raw = json.loads(db_path.read_text())
        assert list(raw["entries"]) == ["../content/post.md"]
        assert raw["entries"]["../content/post.md"]["path"] == "../content/post.md"
        assert raw["entries"]["../content/post.md"]["status"] == "needs_review"
        assert "currentScores" in raw["entries"]["../content/post.md"]

        reloaded = ContentStore(db_path)
        database = await reloaded.load()
        assert list(database.entries) == [doc_path]
        assert database.entries[doc_path].path == doc_path

    @pytest.mark.asyncio
    async def test_add_entries_skips_known_paths(self, db_path, doc_path):
        store = ContentStore(db_path)
        await store.load()

        assert await store.add_entries([doc_path]) == [doc_path]
        assert await store.add_entries([doc_path]) == []

        entry = store.get_entry(doc_path)
        assert entry.status == ContentStatus.NEEDS_REVIEW
        assert entry.current_scores.average() == 0
        assert entry.improvement_iterations == 0

    @pytest.mark.asyncio
    async def test_legacy_in_progress_status_loads(self, db_path):
        db_path.parent.mkdir(parents=True)
        db_path.write_text(
            json.dumps({"entries": {"a.md": {"path": "a.md", "status": "in_progress"}}}),
            encoding="utf-8",
        )
        database = await ContentStore(db_path).load()
        (entry,) = database.entries.values()
        assert entry.status == ContentStatus.IN_PROGRESS


class TestUpdates:
    """Entry mutation and cost accounting."""

    @pytest_asyncio.fixture
    async def store(self, db_path, doc_path):
        store = ContentStore(db_path)
        await store.load()
        await store.add_entries([doc_path])
        return store

    @pytest.mark.asyncio
    async def test_update_entry_persists(self, store, db_path, doc_path):
        def mark_reviewed(entry):
            updated = entry.model_copy(deep=True)
            updated.status = ContentStatus.MEETS_TARGETS
            return updated

        await store.update_entry(doc_path, mark_reviewed)

        raw = json.loads(db_path.read_text())
        assert raw["entries"]["../content/post.md"]["status"] == "meets_targets"

    @pytest.mark.asyncio
    async def test_cost_requires_entry(self, store, tmp_path):
        with pytest.raises(EntryNotFoundError):
            await store.add_operation_cost(str(tmp_path / "missing.md"), "review", cost(0.01))

    @pytest.mark.asyncio
    async def test_cost_invariant(self, store, doc_path):
        await store.add_operation_cost(doc_path, "review", cost(0.01))
        await store.add_operation_cost(doc_path, "improve", cost(0.05))
        await store.add_operation_cost(doc_path, "generate", cost(0.02))
        await store.add_operation_cost(doc_path, "review", cost(0.01))

        accounting = store.get_entry(doc_path).cost_accounting
        assert accounting.review_costs == pytest.approx(0.02)
        assert accounting.improvement_costs == pytest.approx(0.05)
        assert accounting.generation_costs == pytest.approx(0.02)
        assert accounting.total_cost == pytest.approx(
            accounting.review_costs + accounting.improvement_costs + accounting.generation_costs
        )
        assert [op.operation for op in accounting.operation_history] == [
            "review", "improve", "generate", "review",
        ]

    @pytest.mark.asyncio
    async def test_improve_metrics_attach_to_latest_history(self, store, doc_path):
        def improved(entry):
            updated = entry.model_copy(deep=True)
            updated.improvement_iterations = 1
            updated.review_history.append(ReviewHistoryEntry(scores=QualityDimensions(readability=9)))
            return updated

        await store.update_entry(doc_path, improved)
        await store.add_operation_cost(
            doc_path, "improve", cost(0.04), quality_before=6.0, quality_after=8.0
        )

        latest = store.get_entry(doc_path).review_history[-1]
        assert latest.improvement_metrics.quality_delta == pytest.approx(2.0)
        assert latest.improvement_metrics.cost_per_quality_point == pytest.approx(0.02)
        assert latest.improvement_metrics.iteration_number == 1
        assert latest.cost_info.cost == pytest.approx(0.04)

    @pytest.mark.asyncio
    async def test_no_gain_has_zero_cost_per_point(self, store, doc_path):
        def improved(entry):
            updated = entry.model_copy(deep=True)
            updated.review_history.append(ReviewHistoryEntry(scores=QualityDimensions()))
            return updated

        await store.update_entry(doc_path, improved)
        await store.add_operation_cost(
            doc_path, "improve", cost(0.04), quality_before=8.0, quality_after=7.5
        )

        metrics = store.get_entry(doc_path).review_history[-1].improvement_metrics
        assert metrics.quality_delta == pytest.approx(-0.5)
        assert metrics.cost_per_quality_point == 0.0

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self, store, db_path, doc_path):
        await asyncio.gather(*(store.add_operation_cost(doc_path, "review", cost(0.001)) for _ in range(20)))

        reloaded = ContentStore(db_path)
        await reloaded.load()
        accounting = reloaded.get_entry(doc_path).cost_accounting
        assert len(accounting.operation_history) == 20
        assert accounting.review_costs == pytest.approx(0.02)
