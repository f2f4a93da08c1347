"""
Header-aware content chunking.

Splits large markdown documents into overlapping, header-bounded chunks
that fit a model's context, and stitches improved chunks back together.
"""

import logging
import re
from typing import Optional, Sequence

import yaml

from quillsmith.config import get_settings
from quillsmith.processing.models import ContentChunk
from quillsmith.utils.logging import get_logger

module_logger = get_logger(__name__)

FRONTMATTER_PATTERN = re.compile(r"^---\n([\s\S]*?)\n---\n")
HEADER_PATTERN = re.compile(r"^(#{1,6})\s+")


def extract_frontmatter(text: str) -> Optional[str]:
    """
    Leading ``---`` delimited block including its closing newline.

    The block only counts as frontmatter when it holds a YAML mapping, so a
    document opening with a horizontal rule is left alone.
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return None
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        return None
    return match.group(0) if isinstance(data, dict) else None


def remove_frontmatter(text: str) -> str:
    frontmatter = extract_frontmatter(text)
    return text[len(frontmatter):] if frontmatter else text


def header_level(line: str) -> int:
    """Markdown header level of a line, 0 if it is not a header."""
    match = HEADER_PATTERN.match(line.strip())
    return len(match.group(1)) if match else 0


def remove_overlap(current: str, previous: str, overlap_lines: int) -> str:
    """
    Drop the leading lines of ``current`` that repeat the tail of ``previous``.

    Finds the longest run of k lines (k <= overlap_lines * 2) such that the
    first k lines of ``current`` equal the last k lines of ``previous``.
    Matching is exact and line-based, so a chunk rewritten by a model may
    keep part of its overlap.
    """
    current_lines = current.split("\n")
    previous_lines = previous.split("\n")
    limit = min(overlap_lines * 2, len(current_lines), len(previous_lines))

    common = 0
    for k in range(limit, 0, -1):
        if current_lines[:k] == previous_lines[-k:]:
            common = k
            break

    return "\n".join(current_lines[common:])


class ContentChunker:
    """
    Markdown chunker driven by size limits and header boundaries.

    A new chunk starts once the current one holds at least
    ``min_chunk_size`` characters and either exceeds ``max_chunk_size`` or
    the next line is a header of a configured level. Each new chunk repeats
    the last ``overlap_lines`` lines of the previous one.
    """

    def __init__(
        self,
        max_chunk_size: Optional[int] = None,
        min_chunk_size: Optional[int] = None,
        split_on_headers: Optional[bool] = None,
        header_levels: Optional[Sequence[int]] = None,
        overlap_lines: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        settings = get_settings().chunking
        self.max_chunk_size = max_chunk_size if max_chunk_size is not None else settings.max_chunk_size
        self.min_chunk_size = min_chunk_size if min_chunk_size is not None else settings.min_chunk_size
        self.split_on_headers = (
            split_on_headers if split_on_headers is not None else settings.split_on_headers
        )
        self.header_levels = tuple(header_levels or settings.header_levels)
        self.overlap_lines = overlap_lines if overlap_lines is not None else settings.overlap_lines
        self.logger = logger or module_logger

    def should_chunk_content(self, text: str) -> bool:
        return len(text) > self.max_chunk_size

    def _should_split(self, current_size: int, level: int) -> bool:
        if current_size < self.min_chunk_size:
            return False
        if current_size > self.max_chunk_size:
            return True
        return self.split_on_headers and level in self.header_levels

    def _make_chunk(
        self,
        lines: list[str],
        start_line: int,
        end_line: int,
        headers: list[str],
        frontmatter: Optional[str],
        is_first: bool,
    ) -> ContentChunk:
        content = "\n".join(lines)
        preserve = is_first and frontmatter is not None
        if preserve:
            content = frontmatter + content
        return ContentChunk(
            id="",
            content=content,
            start_line=start_line,
            end_line=end_line,
            headers=list(headers),
            preserve_frontmatter=preserve,
            is_first=is_first,
        )

    def chunk_by_headers(self, text: str) -> list[ContentChunk]:
        """
        Split a document into ordered, overlapping chunks.

        Line numbers refer to the whole document, frontmatter included.
        The frontmatter block is attached to the first chunk only.
        """
        frontmatter = extract_frontmatter(text)
        body = text[len(frontmatter):] if frontmatter else text
        offset = frontmatter.count("\n") if frontmatter else 0
        lines = body.split("\n")

        chunks: list[ContentChunk] = []
        current: list[str] = []
        current_size = 0
        current_start = 0
        current_headers: list[str] = []

        for i, line in enumerate(lines):
            level = header_level(line)

            if current and self._should_split(current_size, level):
                chunks.append(
                    self._make_chunk(
                        current,
                        offset + current_start,
                        offset + i - 1,
                        current_headers,
                        frontmatter,
                        is_first=not chunks,
                    )
                )
                overlap_start = max(current_start, i - self.overlap_lines)
                current = lines[overlap_start:i + 1]
                current_size = len("\n".join(current))
                current_start = overlap_start
                current_headers = [line.strip()] if level else []
            else:
                current_size += len(line) + (1 if current else 0)
                current.append(line)
                if level:
                    current_headers.append(line.strip())

        if current:
            chunks.append(
                self._make_chunk(
                    current,
                    offset + current_start,
                    offset + len(lines) - 1,
                    current_headers,
                    frontmatter,
                    is_first=not chunks,
                )
            )

        if chunks:
            chunks[-1].is_last = True

        self.logger.info(
            f"Content chunked into {len(chunks)} parts "
            f"(original {len(text)} chars, sizes {[c.character_count for c in chunks]})"
        )
        return chunks

    def reassemble_chunks(self, chunks: Sequence[ContentChunk]) -> str:
        """Concatenate chunks, dropping repeated frontmatter and overlap lines."""
        if not chunks:
            return ""
        if len(chunks) == 1:
            return chunks[0].content

        parts: list[str] = []
        have_frontmatter = False

        for i, chunk in enumerate(chunks):
            content = chunk.content

            if extract_frontmatter(content) is not None:
                if have_frontmatter:
                    content = remove_frontmatter(content)
                elif i == 0:
                    have_frontmatter = True

            if i > 0:
                content = remove_overlap(content, chunks[i - 1].content, self.overlap_lines)

            parts.append(content)

        # Chunks were cut on line boundaries
        reassembled = "\n".join(parts)
        self.logger.info(f"Reassembled {len(chunks)} chunks into {len(reassembled)} chars")
        return reassembled

    def validate_chunk_boundaries(self, chunks: Sequence[ContentChunk]) -> bool:
        """Check consecutive chunks for gaps wider than the overlap allows."""
        for i in range(1, len(chunks)):
            gap = chunks[i].start_line - chunks[i - 1].end_line
            if gap > self.overlap_lines + 1:
                self.logger.warning(
                    f"Large gap detected between chunks {i - 1} and {i}: "
                    f"{gap} lines (prev end {chunks[i - 1].end_line}, "
                    f"current start {chunks[i].start_line})"
                )
                return False
        return True
