"""Shared fixtures for the Quillsmith test suite."""
import re
from pathlib import Path
from typing import Callable, Optional, Union

import pytest

from quillsmith.config import PipelineConfig, Settings, clear_settings_cache
from quillsmith.services.llm.base import CompletionService
from quillsmith.services.llm.models import CompletionResult, CostInfo, ModelOptions

QUALITY_MARKER = re.compile(r"quality:\s*(\d+(?:\.\d+)?)")

Reply = Union[str, Exception]


def scoring_reply(score: float, reasoning: str = "The content is clear and well organised overall.") -> str:
    return (
        f"SCORE: {score}\n"
        f"REASONING: {reasoning}\n"
        "SUGGESTIONS:\n"
        "- Add a concrete example\n"
        "- Tighten the introduction"
    )


def is_improvement_prompt(text: str) -> bool:
    return text.startswith("TASK: Improve")


def original_from_prompt(text: str) -> str:
    """The document embedded in an improvement prompt."""
    start = text.index("ORIGINAL CONTENT TO IMPROVE:\n") + len("ORIGINAL CONTENT TO IMPROVE:\n")
    end = text.index("\n\nMANDATORY OUTPUT REQUIREMENTS")
    return text[start:end]


def default_responder(text: str, options: Optional[ModelOptions]) -> Reply:
    """
    Score documents by their ``quality: N`` marker; improve them by raising it to 9.
    """
    if is_improvement_prompt(text):
        original = original_from_prompt(text)
        return QUALITY_MARKER.sub("quality: 9", original)
    match = QUALITY_MARKER.search(text)
    return scoring_reply(float(match.group(1)) if match else 7)


class FakeCompletionService(CompletionService):
    """Scripted completion backend that records every call."""

    def __init__(
        self,
        responder: Optional[Callable[[str, Optional[ModelOptions]], Reply]] = None,
        cost_per_call: float = 0.001,
    ):
        self.responder = responder or default_responder
        self.cost_per_call = cost_per_call
        self.calls: list[tuple[str, Optional[ModelOptions]]] = []
        self.closed = False

    @property
    def models_called(self) -> list[str]:
        return [options.key if options else "default" for _, options in self.calls]

    async def prompt(self, text: str, options: Optional[ModelOptions] = None) -> CompletionResult:
        self.calls.append((text, options))
        reply = self.responder(text, options)
        if isinstance(reply, Exception):
            raise reply
        return CompletionResult(
            content=reply,
            cost_info=CostInfo(
                provider=(options.provider if options else None) or "default",
                model=(options.model if options else None) or "default",
                input_tokens=len(text) // 4,
                output_tokens=len(reply) // 4,
                total_cost=self.cost_per_call,
            ),
        )

    async def close(self) -> None:
        self.closed = True


def make_document(title: str, quality: float, paragraphs: int = 3) -> str:
    body = "\n\n".join(
        f"Paragraph {i + 1} about {title} explains the topic in plain words." for i in range(paragraphs)
    )
    return f"---\ntitle: {title}\n---\n\n# {title}\n\nquality: {quality}\n\n{body}\n"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep environment and cached settings from leaking between tests."""
    monkeypatch.delenv("QUILLSMITH_CONFIG_PATH", raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def fake_service():
    return FakeCompletionService()


@pytest.fixture
def test_settings():
    return Settings(
        pipeline=PipelineConfig(
            content_collection="custom",
            custom_base_dir="content",
            custom_include=["**/*.md"],
            review_batch_pause=0,
            improve_batch_pause=0,
        )
    )


@pytest.fixture
def content_root(tmp_path) -> Path:
    """A site with three documents of differing quality."""
    content_dir = tmp_path / "content"
    (content_dir / "guides").mkdir(parents=True)
    (content_dir / "alpha.md").write_text(make_document("Alpha", 9), encoding="utf-8")
    (content_dir / "guides" / "beta.md").write_text(make_document("Beta", 5), encoding="utf-8")
    (content_dir / "guides" / "gamma.md").write_text(make_document("Gamma", 7.5), encoding="utf-8")
    return tmp_path
