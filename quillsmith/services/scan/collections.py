"""
Content collection presets for common static-site frameworks.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ContentCollection:
    """Where a framework keeps its documents and which files count."""

    base_dir: str
    include: tuple[str, ...] = ("**/*.md",)
    exclude: tuple[str, ...] = field(default_factory=tuple)
    framework: str = "custom"


CONTENT_COLLECTIONS: dict[str, ContentCollection] = {
    "astro": ContentCollection(
        base_dir="src/content",
        include=("**/*.mdx", "**/*.md"),
        exclude=("**/index.md", "**/README.md"),
        framework="astro",
    ),
    "nextjs": ContentCollection(
        base_dir="content",
        include=("**/*.mdx", "**/*.md"),
        exclude=("**/README.md",),
        framework="nextjs",
    ),
    "gatsby": ContentCollection(
        base_dir="content",
        include=("**/*.mdx", "**/*.md"),
        exclude=("**/README.md",),
        framework="gatsby",
    ),
}


def custom_collection(
    base_dir: str,
    include: Optional[list[str]] = None,
    exclude: Optional[list[str]] = None,
) -> ContentCollection:
    """Build a collection for a non-standard layout."""
    return ContentCollection(
        base_dir=base_dir,
        include=tuple(include or ["**/*.md"]),
        exclude=tuple(exclude or []),
        framework="custom",
    )


def resolve_collection(
    collection: "str | ContentCollection | None",
    base_dir: Optional[str] = None,
    include: Optional[list[str]] = None,
    exclude: Optional[list[str]] = None,
) -> ContentCollection:
    """Resolve a preset name (or an explicit collection) to a ContentCollection."""
    if isinstance(collection, ContentCollection):
        return collection
    if collection is None:
        return CONTENT_COLLECTIONS["astro"]
    if collection == "custom":
        return custom_collection(base_dir or "content", include, exclude)
    if collection not in CONTENT_COLLECTIONS:
        raise ValueError(
            f"Unknown content collection '{collection}'. "
            f"Expected one of: {', '.join([*CONTENT_COLLECTIONS, 'custom'])}"
        )
    return CONTENT_COLLECTIONS[collection]
