"""Reusable text helpers."""

from __future__ import annotations


def count_words(value: str | None) -> int:
    """Count whitespace-delimited tokens."""

    if not value:
        return 0
    return len(value.split())


def clip_text(value: str | None, *, limit: int) -> str:
    """Return ``value`` stripped and cut to at most ``limit`` characters.

    Args:
        value: Raw user-supplied text (``None`` is treated as empty).
        limit: Maximum number of characters kept.

    Returns:
        The clipped string.
    """

    if not value:
        return ""
    return value.strip()[:limit]
