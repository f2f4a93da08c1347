"""Tests for model fallback and the improvement orchestrator."""
import pytest

from quillsmith.processing.chunker import ContentChunker
from quillsmith.processing.improver import ContentImprover
from quillsmith.services.llm.models import ModelOptions
from quillsmith.utils.exceptions import (
    AuthenticationError,
    ChunkImprovementError,
    EmptyOutputError,
    ProviderRuntimeError,
    SuspiciouslyShortOutputError,
    UsageCapError,
)
from quillsmith.utils.fallback import run_with_fallback

from conftest import FakeCompletionService, is_improvement_prompt, original_from_prompt

MODEL_A = ModelOptions("tetrate", "claude-3-5-sonnet-latest")
MODEL_B = ModelOptions("google", "gemini-1.5-flash-8b")

DOCUMENT = "---\ntitle: Caching\n---\n\n# Caching\n\nCaches store results so they can be reused later.\n"


def echo_improved(text, options):
    """Return the embedded document with one word changed."""
    return original_from_prompt(text).replace("later", "afterwards")


def failing_for(model: ModelOptions, error: Exception):
    def responder(text, options):
        if options == model:
            return error
        return echo_improved(text, options)
    return responder


class TestRunWithFallback:
    """Sequential fallback policy."""

    @pytest.mark.asyncio
    async def test_first_model_success(self):
        attempted = []

        async def attempt(model):
            attempted.append(model)
            return model.key

        assert await run_with_fallback([MODEL_A, MODEL_B], attempt) == MODEL_A.key
        assert attempted == [MODEL_A]

    @pytest.mark.asyncio
    async def test_usage_cap_falls_through(self):
        attempted = []

        async def attempt(model):
            attempted.append(model)
            if model == MODEL_A:
                raise UsageCapError("quota exceeded")
            return "ok"

        assert await run_with_fallback([MODEL_A, MODEL_B], attempt) == "ok"
        assert attempted == [MODEL_A, MODEL_B]

    @pytest.mark.asyncio
    async def test_auth_error_stops(self):
        attempted = []

        async def attempt(model):
            attempted.append(model)
            raise AuthenticationError("invalid api key")

        with pytest.raises(AuthenticationError):
            await run_with_fallback([MODEL_A, MODEL_B], attempt)
        assert attempted == [MODEL_A]

    @pytest.mark.asyncio
    async def test_exhausted_raises_last_error(self):
        async def attempt(model):
            raise ProviderRuntimeError(f"timeout on {model}")

        with pytest.raises(ProviderRuntimeError) as exc_info:
            await run_with_fallback([MODEL_A, MODEL_B], attempt)
        assert str(MODEL_B) in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_exhausted_usage_caps_keep_resume_date(self):
        async def attempt(model):
            resume = "2025-02-01" if model == MODEL_B else "2025-01-15"
            raise UsageCapError(f"quota exceeded on {model}", resume_date=resume)

        with pytest.raises(UsageCapError) as exc_info:
            await run_with_fallback([MODEL_A, MODEL_B], attempt)
        assert exc_info.value.resume_date == "2025-02-01"
        assert exc_info.value.recoverable

    @pytest.mark.asyncio
    async def test_plain_exception_with_recoverable_marker(self):
        attempted = []

        async def attempt(model):
            attempted.append(model)
            if model == MODEL_A:
                raise RuntimeError("connection reset by peer")
            return "ok"

        assert await run_with_fallback([MODEL_A, MODEL_B], attempt) == "ok"
        assert len(attempted) == 2

    @pytest.mark.asyncio
    async def test_empty_model_list(self):
        async def attempt(model):
            return "unused"

        with pytest.raises(ValueError):
            await run_with_fallback([], attempt)


class TestContentImprover:
    """Improvement with sanitisation and length checks."""

    @pytest.mark.asyncio
    async def test_improves_with_first_model(self):
        service = FakeCompletionService(echo_improved)
        improver = ContentImprover(service)

        result = await improver.improve_content(DOCUMENT, {}, [MODEL_A, MODEL_B])

        assert "afterwards" in result.content
        assert result.content.startswith("---\ntitle: Caching")
        assert result.model_used == MODEL_A.key
        assert result.chunk_count == 1
        assert service.models_called == [MODEL_A.key]
        assert result.cost_info.total_cost == pytest.approx(0.001)

    @pytest.mark.asyncio
    async def test_usage_cap_uses_second_model(self):
        service = FakeCompletionService(failing_for(MODEL_A, UsageCapError("quota exceeded")))
        result = await ContentImprover(service).improve_content(DOCUMENT, {}, [MODEL_A, MODEL_B])

        assert service.models_called == [MODEL_A.key, MODEL_B.key]
        assert result.model_used == MODEL_B.key

    @pytest.mark.asyncio
    async def test_auth_error_never_tries_second_model(self):
        service = FakeCompletionService(failing_for(MODEL_A, AuthenticationError("invalid api key")))

        with pytest.raises(AuthenticationError):
            await ContentImprover(service).improve_content(DOCUMENT, {}, [MODEL_A, MODEL_B])
        assert service.models_called == [MODEL_A.key]

    @pytest.mark.asyncio
    async def test_passthrough_text_falls_through(self):
        def responder(text, options):
            if options == MODEL_A:
                return "Interrupted before the model replied"
            return echo_improved(text, options)

        service = FakeCompletionService(responder)
        result = await ContentImprover(service).improve_content(DOCUMENT, {}, [MODEL_A, MODEL_B])

        assert result.model_used == MODEL_B.key
        assert "Interrupted" not in result.content

    @pytest.mark.asyncio
    async def test_preamble_and_frontmatter_repaired(self):
        def responder(text, options):
            body = original_from_prompt(text).split("---\n", 2)[2].lstrip()
            return "I'll help you improve this content.\n\n" + body

        result = await ContentImprover(FakeCompletionService(responder)).improve_content(
            DOCUMENT, {}, [MODEL_A]
        )
        assert result.content.startswith("---\ntitle: Caching\n---")
        assert "I'll help" not in result.content

    @pytest.mark.asyncio
    async def test_short_output_rejected(self):
        service = FakeCompletionService(lambda text, options: "# Caching")
        with pytest.raises(SuspiciouslyShortOutputError):
            await ContentImprover(service).improve_content(DOCUMENT, {}, [MODEL_A])

    @pytest.mark.asyncio
    async def test_empty_output_rejected(self):
        service = FakeCompletionService(lambda text, options: "")
        with pytest.raises(EmptyOutputError):
            await ContentImprover(service).improve_content(DOCUMENT, {}, [MODEL_A])

    @pytest.mark.asyncio
    async def test_empty_output_does_not_try_next_model(self):
        def responder(text, options):
            if options == MODEL_A:
                return "   "
            return echo_improved(text, options)

        service = FakeCompletionService(responder)
        with pytest.raises(EmptyOutputError):
            await ContentImprover(service).improve_content(DOCUMENT, {}, [MODEL_A, MODEL_B])
        assert service.models_called == [MODEL_A.key]

    @pytest.mark.asyncio
    async def test_requires_a_model(self):
        with pytest.raises(ValueError):
            await ContentImprover(FakeCompletionService()).improve_content(DOCUMENT, {}, [])

    @pytest.mark.asyncio
    async def test_integrity_findings_reported(self):
        def responder(text, options):
            return original_from_prompt(text) + "\n[Content continues...]\n"

        result = await ContentImprover(FakeCompletionService(responder)).improve_content(
            DOCUMENT, {}, [MODEL_A]
        )
        assert [v.kind for v in result.violations] == ["truncation"]


class TestChunkedImprovement:
    """Large documents are improved chunk by chunk."""

    @pytest.fixture
    def chunker(self):
        return ContentChunker(max_chunk_size=600, min_chunk_size=200, overlap_lines=2)

    @staticmethod
    def large_document() -> str:
        sections = []
        for n in range(1, 4):
            lines = [f"Section {n} sentence {j} describes later behaviour." for j in range(8)]
            sections.append("\n".join([f"## Part {n}", *lines]))
        return "---\ntitle: Long\n---\n" + "\n".join(sections) + "\n"

    @pytest.mark.asyncio
    async def test_chunks_improved_and_reassembled(self, chunker):
        service = FakeCompletionService(echo_improved)
        improver = ContentImprover(service, chunker=chunker)
        document = self.large_document()

        result = await improver.improve_content(document, {}, [MODEL_A])

        assert result.chunk_count == 3
        assert len(service.calls) == 3
        assert all(is_improvement_prompt(text) for text, _ in service.calls)
        assert result.content.count("title: Long") == 1
        assert result.content.count("## Part") == 3
        assert "later" not in result.content
        assert result.cost_info.total_cost == pytest.approx(0.003)
        assert result.cost_info.provider == MODEL_A.provider

    @pytest.mark.asyncio
    async def test_chunk_failure_identifies_chunk(self, chunker):
        def responder(text, options):
            if "## Part 2" in original_from_prompt(text):
                return AuthenticationError("invalid api key")
            return echo_improved(text, options)

        improver = ContentImprover(FakeCompletionService(responder), chunker=chunker)
        with pytest.raises(ChunkImprovementError) as exc_info:
            await improver.improve_content(self.large_document(), {}, [MODEL_A])
        assert exc_info.value.index == 1

    @pytest.mark.asyncio
    async def test_short_chunk_rejected_even_when_document_grows(self, chunker):
        padding = "\n" + "This part gains a further worked example.\n" * 6

        def responder(text, options):
            original = original_from_prompt(text)
            if "## Part 2" in original:
                return "## Part 2\nshort."
            return original + padding

        service = FakeCompletionService(responder)
        improver = ContentImprover(service, chunker=chunker)
        with pytest.raises(ChunkImprovementError) as exc_info:
            await improver.improve_content(self.large_document(), {}, [MODEL_A, MODEL_B])

        assert exc_info.value.index == 1
        assert isinstance(exc_info.value.cause, SuspiciouslyShortOutputError)
        assert service.models_called == [MODEL_A.key, MODEL_A.key]
