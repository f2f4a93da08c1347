"""
Filesystem content scanner.
"""

import asyncio
from pathlib import Path
from typing import Iterable, Union

from quillsmith.services.scan.base import ContentSource
from quillsmith.services.scan.collections import ContentCollection, resolve_collection
from quillsmith.utils.exceptions import ScanError
from quillsmith.utils.logging import get_logger

logger = get_logger(__name__)


def glob_files(directory: Path, patterns: Iterable[str]) -> set[Path]:
    """Files under ``directory`` matching any of ``patterns`` (``**/`` spans zero or more directories)."""
    return {path for pattern in patterns for path in directory.glob(pattern) if path.is_file()}


class FileSystemScanner(ContentSource):
    """
    Discover documents under ``root_dir / collection.base_dir``.
    """

    def __init__(
        self,
        root_dir: Union[str, Path] = ".",
        collection: Union[str, ContentCollection, None] = None,
    ):
        self.root_dir = Path(root_dir).resolve()
        self.collection = resolve_collection(collection)

    @property
    def content_dir(self) -> Path:
        return (self.root_dir / self.collection.base_dir).resolve()

    def _scan_sync(self) -> list[str]:
        content_dir = self.content_dir
        if not content_dir.is_dir():
            raise ScanError(
                str(content_dir),
                "Make sure the directory exists or configure a different base_dir.",
            )

        included = glob_files(content_dir, self.collection.include)
        excluded = glob_files(content_dir, self.collection.exclude)
        return sorted(str(path) for path in included - excluded)

    async def scan_content(self) -> list[str]:
        loop = asyncio.get_running_loop()
        files = await loop.run_in_executor(None, self._scan_sync)
        logger.info(
            f"Found {len(files)} document(s) in {self.content_dir} "
            f"({self.collection.framework})"
        )
        return files

    async def read_content(self, path: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: Path(path).read_text(encoding="utf-8")
        )

    async def write_content(self, path: str, text: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, lambda: Path(path).write_text(text, encoding="utf-8")
        )
        logger.debug(f"Wrote {len(text)} chars to {path}")
