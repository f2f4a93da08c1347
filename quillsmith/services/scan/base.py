"""
Abstract base class for content sources.
"""

from abc import ABC, abstractmethod


class ContentSource(ABC):
    """
    Abstract interface for document discovery and access.

    Implementations enumerate the documents of a content collection and
    read or write their text.
    """

    @abstractmethod
    async def scan_content(self) -> list[str]:
        """
        Enumerate documents.

        Returns:
            Sorted list of absolute document paths

        Raises:
            ScanError: If the content location does not exist
        """
        pass

    @abstractmethod
    async def read_content(self, path: str) -> str:
        """
        Read a document.

        Args:
            path: Absolute document path

        Returns:
            Document text
        """
        pass

    @abstractmethod
    async def write_content(self, path: str, text: str) -> None:
        """
        Replace a document's text.

        Args:
            path: Absolute document path
            text: New document text
        """
        pass
