"""Text cleanup for host rich text."""

from .sanitizer import sanitize, strip_markup, truncate

__all__ = ["sanitize", "strip_markup", "truncate"]
