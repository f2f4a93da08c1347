"""Content Processing - Scoring, Chunking, Improvement, Integrity."""
from .chunker import ContentChunker
from .improver import ContentImprover
from .integrity import IntegrityChecker
from .scorer import QualityScorer
from .status import determine_status

__all__ = [
    "ContentChunker",
    "ContentImprover",
    "IntegrityChecker",
    "QualityScorer",
    "determine_status",
]
