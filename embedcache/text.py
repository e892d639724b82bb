"""Text preprocessing applied before embedding when enabled."""

from __future__ import annotations


def preprocess_text(text: str) -> str:
    """Trim, lowercase and collapse runs of whitespace to single spaces."""
    return " ".join(text.lower().split())
