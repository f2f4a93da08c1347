"""
Storage Base Interfaces.

Abstract base class for the content record store.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from quillsmith.services.llm.models import CostInfo
from quillsmith.storage.models import ContentDatabase, ContentEntry, OperationType


EntryUpdate = Callable[[Optional[ContentEntry]], ContentEntry]


class RecordStore(ABC):
    """
    Abstract base class for persistent per-document records.

    Every mutation is persisted before the call returns.
    """

    @abstractmethod
    async def load(self) -> ContentDatabase:
        """
        Load the database, creating an empty one if none exists.

        Returns:
            The loaded database

        Raises:
            StoreIOError: If the store cannot be read or parsed
        """
        pass

    @abstractmethod
    async def save(self) -> None:
        """
        Persist the whole database.

        Raises:
            StoreIOError: If the store cannot be written
        """
        pass

    @abstractmethod
    def get_data(self) -> ContentDatabase:
        """Return the in-memory database."""
        pass

    @abstractmethod
    async def update_entry(self, path: str, update_fn: EntryUpdate) -> ContentEntry:
        """
        Replace one entry with ``update_fn(existing_or_None)`` and persist.

        Args:
            path: Document path
            update_fn: Pure function producing the new entry

        Returns:
            The stored entry
        """
        pass

    @abstractmethod
    async def add_operation_cost(
        self,
        path: str,
        operation: OperationType,
        cost_info: CostInfo,
        quality_before: Optional[float] = None,
        quality_after: Optional[float] = None,
    ) -> None:
        """
        Record the cost of an operation against a document.

        Args:
            path: Document path
            operation: review, improve or generate
            cost_info: Cost of the AI calls
            quality_before: Average score before an improvement
            quality_after: Average score after an improvement

        Raises:
            EntryNotFoundError: If the document has no record
        """
        pass
