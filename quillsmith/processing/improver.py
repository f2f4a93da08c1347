"""
Content improvement.

Turns a scored document into an improved replacement using an ordered list
of fallback models, chunking documents that are too large for one request.
"""

import logging
from typing import Optional, Sequence

from quillsmith.processing.chunker import ContentChunker
from quillsmith.processing.integrity import (
    IntegrityChecker,
    sanitize_response,
    validate_length_ratio,
)
from quillsmith.processing.models import ContentChunk, ImprovementResult, LengthCheck, ScoringResult
from quillsmith.processing.prompts import build_improvement_prompt
from quillsmith.services.llm.base import CompletionService
from quillsmith.services.llm.models import CostInfo, ModelOptions
from quillsmith.utils.exceptions import ChunkImprovementError, QuillsmithError
from quillsmith.utils.fallback import run_with_fallback
from quillsmith.utils.logging import get_logger

module_logger = get_logger(__name__)


class ContentImprover:
    """
    Improvement orchestrator.

    Each model attempt is sanitised before it counts as a success, so a
    provider error disguised as content falls through to the next model
    when it is recoverable.
    """

    def __init__(
        self,
        service: CompletionService,
        chunker: Optional[ContentChunker] = None,
        checker: Optional[IntegrityChecker] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.service = service
        self.logger = logger or module_logger
        self.chunker = chunker or ContentChunker(logger=self.logger)
        self.checker = checker or IntegrityChecker(logger=self.logger)

    @staticmethod
    def _analysis_payload(analysis) -> dict:
        if isinstance(analysis, ScoringResult):
            return analysis.analysis_dict()
        return dict(analysis or {})

    async def _improve_text(
        self,
        text: str,
        analysis: dict,
        models: Sequence[ModelOptions],
    ) -> tuple[str, CostInfo, str, LengthCheck]:
        prompt = build_improvement_prompt(text, analysis)

        async def attempt(model: ModelOptions) -> tuple[str, CostInfo, str, LengthCheck]:
            result = await self.service.prompt(prompt, model)
            content = sanitize_response(text, result.content, self.logger)
            # Every request, chunk or whole document, must keep its length
            check = validate_length_ratio(len(text), len(content), self.logger)
            return content, result.cost_info, model.key, check

        return await run_with_fallback(models, attempt, logger=self.logger)

    async def _improve_chunks(
        self,
        chunks: list[ContentChunk],
        analysis: dict,
        models: Sequence[ModelOptions],
    ) -> tuple[list[ContentChunk], CostInfo, str]:
        improved: list[ContentChunk] = []
        total_cost: Optional[CostInfo] = None
        model_used = ""

        for index, chunk in enumerate(chunks):
            self.logger.info(
                f"Improving chunk {index + 1}/{len(chunks)} "
                f"(lines {chunk.start_line}-{chunk.end_line}, {chunk.character_count} chars)"
            )
            try:
                content, cost_info, model_used, _ = await self._improve_text(
                    chunk.content, analysis, models
                )
            except QuillsmithError as e:
                raise ChunkImprovementError(index, len(chunks), e) from e

            improved.append(
                ContentChunk(
                    id=chunk.id,
                    content=content,
                    start_line=chunk.start_line,
                    end_line=chunk.end_line,
                    headers=chunk.headers,
                    preserve_frontmatter=chunk.preserve_frontmatter,
                    is_first=chunk.is_first,
                    is_last=chunk.is_last,
                )
            )
            total_cost = cost_info if total_cost is None else total_cost + cost_info

        return improved, total_cost or CostInfo(), model_used

    async def improve_content(
        self,
        text: str,
        analysis,
        model_options: Sequence[ModelOptions],
    ) -> ImprovementResult:
        """
        Produce an improved version of ``text``.

        Args:
            text: Original document
            analysis: ScoringResult or its serialisable analysis mapping
            model_options: Ordered fallback model list, at least one entry

        Returns:
            ImprovementResult with the sanitised content and aggregated cost

        Raises:
            ValueError: If no models are given
            AIProviderError: If the models fail
            ContentIntegrityError: If the output is empty or too short
        """
        if not model_options:
            raise ValueError("At least one model must be provided for improvement")

        models = [ModelOptions.from_value(m) for m in model_options]
        payload = self._analysis_payload(analysis)
        chunk_count = 1

        if self.chunker.should_chunk_content(text):
            chunks = self.chunker.chunk_by_headers(text)
            self.chunker.validate_chunk_boundaries(chunks)
            chunk_count = len(chunks)
            self.logger.info(f"Large document ({len(text)} chars), improving {chunk_count} chunks")

            improved_chunks, cost_info, model_used = await self._improve_chunks(
                chunks, payload, models
            )
            content = self.chunker.reassemble_chunks(improved_chunks)
            check = validate_length_ratio(len(text), len(content), self.logger)
            cost_info = CostInfo(
                provider=models[0].provider or "default",
                model=models[0].model or "default",
                input_tokens=cost_info.input_tokens,
                output_tokens=cost_info.output_tokens,
                total_cost=cost_info.total_cost,
                timestamp=cost_info.timestamp,
            )
        else:
            content, cost_info, model_used, check = await self._improve_text(text, payload, models)

        warnings = [msg for msg in (check.warning, check.note) if msg]
        violations = self.checker.new_violations(text, content)

        self.logger.info(
            f"Improved content: {len(text)} -> {len(content)} chars "
            f"({check.ratio:.0%}), cost ${cost_info.total_cost:.6f}"
        )

        return ImprovementResult(
            content=content,
            cost_info=cost_info,
            warnings=warnings,
            violations=violations,
            chunk_count=chunk_count,
            model_used=model_used or None,
        )
