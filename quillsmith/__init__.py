"""Quillsmith - content quality scoring and improvement pipeline."""

__version__ = "1.0.0"
