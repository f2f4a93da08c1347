"""Content discovery - filesystem scanner and collection presets."""
from .base import ContentSource
from .collections import CONTENT_COLLECTIONS, ContentCollection, custom_collection, resolve_collection
from .filesystem import FileSystemScanner

__all__ = [
    "ContentSource",
    "ContentCollection",
    "CONTENT_COLLECTIONS",
    "custom_collection",
    "resolve_collection",
    "FileSystemScanner",
]
