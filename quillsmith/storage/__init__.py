"""
Storage Package.

Persistent content records, cost ledgers and review history.
"""

from quillsmith.storage.base import RecordStore
from quillsmith.storage.content_store import ContentStore, normalize_path
from quillsmith.storage.models import (
    ContentDatabase,
    ContentEntry,
    ContentStatus,
    CostAccounting,
    OperationCostInfo,
    QualityDimensions,
    QualityImprovementMetrics,
    ReviewHistoryEntry,
)

__all__ = [
    "RecordStore",
    "ContentStore",
    "normalize_path",
    "ContentDatabase",
    "ContentEntry",
    "ContentStatus",
    "CostAccounting",
    "OperationCostInfo",
    "QualityDimensions",
    "QualityImprovementMetrics",
    "ReviewHistoryEntry",
]
