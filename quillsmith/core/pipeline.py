"""
Content quality pipeline.

Ties discovery, scoring, improvement, persistence and analytics together
into the operations exposed by the CLI.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from quillsmith.config import Settings, get_settings
from quillsmith.core.analytics import CostSummary, ROIAnalysis, get_cost_summary, get_roi_analysis
from quillsmith.processing.chunker import ContentChunker
from quillsmith.processing.improver import ContentImprover
from quillsmith.processing.scorer import QualityScorer
from quillsmith.processing.status import determine_status
from quillsmith.services.llm import CompletionService, create_completion_service
from quillsmith.services.llm.models import ModelOptions
from quillsmith.services.scan import ContentSource, FileSystemScanner, resolve_collection
from quillsmith.storage.content_store import ContentStore, normalize_path
from quillsmith.storage.models import ContentEntry, ContentStatus, ReviewHistoryEntry, utc_now_iso
from quillsmith.utils.exceptions import AlreadyReviewedError, EntryNotFoundError, StoreIOError
from quillsmith.utils.logging import OperationLogger, get_logger

module_logger = get_logger(__name__)


class WorkflowTask(str, Enum):
    """Tasks with their own model fallback list."""
    REVIEW = "review"
    IMPROVE = "improve"
    GENERATE = "generate"


@dataclass
class BatchFailure:
    path: str
    error: str


@dataclass
class BatchResult:
    """Outcome of a batch review or improvement."""

    successful: list[str] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)
    duration: float = 0.0

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)

    def to_dict(self) -> dict:
        return {
            "successful": list(self.successful),
            "failed": [{"path": f.path, "error": f.error} for f in self.failed],
            "summary": {
                "total": self.total,
                "succeeded": len(self.successful),
                "failed": len(self.failed),
                "duration": round(self.duration, 3),
            },
        }


@dataclass
class PipelineStatus:
    """Content health dashboard."""

    total_files: int
    needs_review: int
    needs_improvement: int
    meets_targets: int
    average_score: float
    worst_scoring: Optional[str]
    cost_summary: CostSummary

    def to_dict(self) -> dict:
        return {
            "totalFiles": self.total_files,
            "needsReview": self.needs_review,
            "needsImprovement": self.needs_improvement,
            "meetsTargets": self.meets_targets,
            "averageScore": self.average_score,
            "worstScoring": self.worst_scoring,
            "costSummary": self.cost_summary.to_dict(),
        }


@dataclass
class WorkflowResult:
    """Result of a discover, review, improve run."""

    discovered: list[str] = field(default_factory=list)
    review: Optional[BatchResult] = None
    improvement: Optional[BatchResult] = None
    status: Optional[PipelineStatus] = None

    def to_dict(self) -> dict:
        return {
            "discovered": list(self.discovered),
            "review": self.review.to_dict() if self.review else None,
            "improvement": self.improvement.to_dict() if self.improvement else None,
            "status": self.status.to_dict() if self.status else None,
        }


class ContentPipeline:
    """
    Orchestrates the content quality workflow over one content root.

    Components are created from settings unless injected.
    """

    def __init__(
        self,
        root_dir: Union[str, Path, None] = None,
        store: Optional[ContentStore] = None,
        scanner: Optional[ContentSource] = None,
        service: Optional[CompletionService] = None,
        scorer: Optional[QualityScorer] = None,
        improver: Optional[ContentImprover] = None,
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.settings = settings or get_settings()
        self.logger = logger or module_logger
        pipeline_config = self.settings.pipeline

        self.root_dir = Path(root_dir or pipeline_config.root_dir).resolve()

        if store is None:
            db_path = Path(pipeline_config.db_path)
            if not db_path.is_absolute():
                db_path = self.root_dir / db_path
            store = ContentStore(db_path, logger=self.logger)
        self.store = store

        if scanner is None:
            collection = resolve_collection(
                pipeline_config.content_collection,
                base_dir=pipeline_config.custom_base_dir,
                include=pipeline_config.custom_include,
                exclude=pipeline_config.custom_exclude,
            )
            scanner = FileSystemScanner(self.root_dir, collection)
        self.scanner = scanner

        self.service = service or create_completion_service(cwd=str(self.root_dir))

        review_models = self.model_options_for(WorkflowTask.REVIEW)
        self.scorer = scorer or QualityScorer(
            self.service,
            default_model=review_models[0] if review_models else None,
            logger=self.logger,
        )

        chunking = self.settings.chunking
        self.improver = improver or ContentImprover(
            self.service,
            chunker=ContentChunker(
                max_chunk_size=chunking.max_chunk_size,
                min_chunk_size=chunking.min_chunk_size,
                split_on_headers=chunking.split_on_headers,
                header_levels=chunking.header_levels,
                overlap_lines=chunking.overlap_lines,
                logger=self.logger,
            ),
            logger=self.logger,
        )
        self._initialized = False

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self.store.load()
        self._initialized = True

    def model_options_for(self, task: Union[WorkflowTask, str]) -> list[ModelOptions]:
        """Ordered fallback models configured for a task."""
        task = WorkflowTask(task)
        choices = getattr(self.settings.models, task.value)
        return [ModelOptions(provider=c.provider, model=c.model) for c in choices]

    # --- discovery and selection ---

    async def discover_content(self) -> list[str]:
        """Scan for documents and create records for new ones."""
        await self.initialize()
        paths = await self.scanner.scan_content()
        added = await self.store.add_entries(paths)
        self.logger.info(f"Discovered {len(paths)} document(s), {len(added)} new")
        return added

    def get_content_by_status(self, status: Union[ContentStatus, str]) -> list[str]:
        status = ContentStatus(status)
        return [
            path for path, entry in self.store.get_data().entries.items()
            if entry.status == status
        ]

    def get_content_needing_review(self) -> list[str]:
        return self.get_content_by_status(ContentStatus.NEEDS_REVIEW)

    def _improvement_candidates(self) -> list[ContentEntry]:
        candidates = [
            entry for entry in self.store.get_data().entries.values()
            if entry.status not in (ContentStatus.MEETS_TARGETS, ContentStatus.NEEDS_REVIEW)
            and entry.average_score != 0
        ]
        return sorted(candidates, key=lambda e: e.average_score)

    def select_worst(self, count: int = 1) -> list[str]:
        """Lowest-scoring reviewed documents that still need work."""
        return [entry.path for entry in self._improvement_candidates()[:count]]

    def get_worst_scoring_content(self) -> Optional[str]:
        worst = self.select_worst(1)
        return worst[0] if worst else None

    # --- single-document operations ---

    def _resolve(self, path: str) -> str:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root_dir / candidate
        return normalize_path(candidate)

    def _require_entry(self, path: str) -> ContentEntry:
        key = self._resolve(path)
        entry = self.store.get_entry(key)
        if entry is None:
            raise EntryNotFoundError(key)
        return entry

    async def review_content(self, path: str) -> ContentEntry:
        """
        Score a document that has not been reviewed yet.

        Raises:
            EntryNotFoundError: If the document is not tracked
            AlreadyReviewedError: If the document is past ``needs_review``
        """
        await self.initialize()
        entry = self._require_entry(path)
        if entry.status != ContentStatus.NEEDS_REVIEW:
            raise AlreadyReviewedError(entry.path, entry.status.value)

        content = await self.scanner.read_content(entry.path)
        result = await self.scorer.score_content(content)

        def apply_review(current: Optional[ContentEntry]) -> ContentEntry:
            if current is None:
                raise EntryNotFoundError(entry.path)
            updated = current.model_copy(deep=True)
            updated.current_scores = result.scores
            updated.last_review_date = utc_now_iso()
            updated.status = determine_status(result.scores)
            updated.review_history.append(ReviewHistoryEntry(scores=result.scores))
            return updated

        updated = await self.store.update_entry(entry.path, apply_review)
        if result.cost_info:
            await self.store.add_operation_cost(entry.path, "review", result.cost_info)

        OperationLogger(self.logger, "review", path=entry.path).info(
            f"Reviewed {entry.path}: average {result.scores.average():.2f} -> {updated.status.value}"
        )
        return updated

    async def improve_content(self, path: str) -> ContentEntry:
        """
        Improve a document, re-score it and record the quality gain.

        Raises:
            EntryNotFoundError: If the document is not tracked
            AIProviderError: If every improvement model fails
            ContentIntegrityError: If the improved text is rejected
        """
        await self.initialize()
        entry = self._require_entry(path)
        key = entry.path
        log = OperationLogger(self.logger, "improve", path=key)

        content = await self.scanner.read_content(key)
        before = await self.scorer.score_content(content)
        if before.cost_info:
            await self.store.add_operation_cost(key, "review", before.cost_info)

        log.info(f"Improving {key} ({len(content)} chars)")
        improvement = await self.improver.improve_content(
            content, before, self.model_options_for(WorkflowTask.IMPROVE)
        )
        if improvement.content == content:
            log.warning(f"Improved content is identical to the original: {key}")

        after = await self.scorer.score_content(improvement.content)
        await self.scanner.write_content(key, improvement.content)

        suggestions = before.all_suggestions()

        def apply_improvement(current: Optional[ContentEntry]) -> ContentEntry:
            if current is None:
                raise EntryNotFoundError(key)
            updated = current.model_copy(deep=True)
            updated.current_scores = after.scores
            updated.last_review_date = utc_now_iso()
            updated.improvement_iterations += 1
            updated.status = determine_status(after.scores)
            updated.review_history.append(
                ReviewHistoryEntry(scores=after.scores, improvements=suggestions)
            )
            return updated

        updated = await self.store.update_entry(key, apply_improvement)
        await self.store.add_operation_cost(
            key,
            "improve",
            improvement.cost_info,
            quality_before=before.scores.average(),
            quality_after=after.scores.average(),
        )
        if after.cost_info:
            await self.store.add_operation_cost(key, "review", after.cost_info)

        log.info(
            f"Improved {key}: {before.scores.average():.2f} -> "
            f"{after.scores.average():.2f} ({updated.status.value})"
        )
        return self.store.get_entry(key) or updated

    # --- batch operations ---

    async def _guarded(
        self,
        operation: Callable[[str], Awaitable[object]],
        path: str,
    ) -> Optional[BatchFailure]:
        try:
            await operation(path)
            return None
        except StoreIOError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to process {path}: {e}")
            return BatchFailure(path=path, error=str(e))

    async def _run_batch(
        self,
        paths: list[str],
        operation: Callable[[str], Awaitable[object]],
        batch_size: int,
        pause: float,
        label: str,
    ) -> BatchResult:
        await self.initialize()
        batch_size = max(1, batch_size)
        result = BatchResult()
        start_time = time.time()
        total_batches = (len(paths) + batch_size - 1) // batch_size

        self.logger.info(
            f"Starting batch {label} of {len(paths)} file(s) (batch size: {batch_size})"
        )
        for start in range(0, len(paths), batch_size):
            group = paths[start:start + batch_size]
            self.logger.info(
                f"Processing {label} batch {start // batch_size + 1}/{total_batches} "
                f"({len(group)} files)"
            )
            failures = await asyncio.gather(*(self._guarded(operation, p) for p in group))
            for path, failure in zip(group, failures):
                if failure is None:
                    result.successful.append(path)
                else:
                    result.failed.append(failure)

            if start + batch_size < len(paths):
                await asyncio.sleep(pause)

        result.duration = time.time() - start_time
        self.logger.info(
            f"Batch {label} completed: {len(result.successful)} succeeded, "
            f"{len(result.failed)} failed in {result.duration:.1f}s"
        )
        return result

    async def review_batch(self, paths: list[str], batch_size: Optional[int] = None) -> BatchResult:
        return await self._run_batch(
            paths,
            self.review_content,
            batch_size or self.settings.pipeline.review_batch_size,
            self.settings.pipeline.review_batch_pause,
            "review",
        )

    async def improve_batch(self, paths: list[str], batch_size: Optional[int] = None) -> BatchResult:
        return await self._run_batch(
            paths,
            self.improve_content,
            batch_size or self.settings.pipeline.improve_batch_size,
            self.settings.pipeline.improve_batch_pause,
            "improvement",
        )

    async def review_all(self, batch_size: Optional[int] = None) -> BatchResult:
        """Review every document still in ``needs_review``."""
        await self.initialize()
        paths = self.get_content_needing_review()
        if not paths:
            self.logger.info("No content needs review")
            return BatchResult()
        return await self.review_batch(paths, batch_size)

    async def improve_worst(self, count: int = 1, batch_size: Optional[int] = None) -> BatchResult:
        """Improve the ``count`` lowest-scoring documents."""
        await self.initialize()
        paths = self.select_worst(count)
        if not paths:
            self.logger.info("No content needs improvement")
            return BatchResult()
        return await self.improve_batch(paths, batch_size)

    async def run_full_workflow(self, improve_count: int = 1) -> WorkflowResult:
        """Discover, review everything pending, then improve the worst documents."""
        result = WorkflowResult()
        result.discovered = await self.discover_content()
        result.review = await self.review_all()
        if improve_count > 0:
            result.improvement = await self.improve_worst(improve_count)
        result.status = await self.get_status()
        return result

    # --- reporting ---

    async def get_status(self) -> PipelineStatus:
        await self.initialize()
        entries = list(self.store.get_data().entries.values())
        averages = [entry.average_score for entry in entries]

        return PipelineStatus(
            total_files=len(entries),
            needs_review=sum(1 for e in entries if e.status == ContentStatus.NEEDS_REVIEW),
            needs_improvement=sum(1 for e in entries if e.status == ContentStatus.NEEDS_IMPROVEMENT),
            meets_targets=sum(1 for e in entries if e.status == ContentStatus.MEETS_TARGETS),
            average_score=round(sum(averages) / len(averages), 1) if averages else 0.0,
            worst_scoring=self.get_worst_scoring_content(),
            cost_summary=get_cost_summary(self.store.get_data()),
        )

    async def get_cost_summary(self, path: Optional[str] = None) -> CostSummary:
        await self.initialize()
        return get_cost_summary(self.store.get_data(), self._resolve(path) if path else None)

    async def get_roi_analysis(self) -> ROIAnalysis:
        await self.initialize()
        return get_roi_analysis(self.store.get_data())

    async def estimate_review_cost(self, path: str) -> float:
        """Estimated cost of scoring a tracked document."""
        await self.initialize()
        entry = self._require_entry(path)
        content = await self.scanner.read_content(entry.path)
        return await self.scorer.estimate_cost(content)

    async def close(self) -> None:
        await self.service.close()
