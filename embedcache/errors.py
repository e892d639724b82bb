"""Exception hierarchy for the embedding cache and ranking engine."""

from __future__ import annotations


class EmbedCacheError(Exception):
    """Base class for all embedcache errors."""


class NotInitialized(EmbedCacheError):
    """An operation needed an encoder before one was bound."""


class AlreadyInitialized(EmbedCacheError):
    """An encoder was bound to a service that already has one."""


class DimensionMismatch(EmbedCacheError):
    """Two vectors (or a vector and a configured dimension) disagree in length."""


class EncodeError(EmbedCacheError):
    """The external encoder failed to embed a text."""

    def __init__(self, text: str, reason: str | BaseException):
        self.text = text
        self.reason = reason
        super().__init__(f"Failed to embed {_preview(text)!r}: {reason}")


class BatchEncodeError(EmbedCacheError):
    """One or more texts in a batch failed to embed."""

    def __init__(self, failures: list[tuple[int, str, EncodeError]], total: int):
        self.failures = failures
        self.total = total
        first = failures[0][2] if failures else None
        super().__init__(
            f"{len(failures)}/{total} texts failed to embed"
            + (f" (first: {first})" if first else "")
        )


class MalformedData(EmbedCacheError):
    """Serialized collection bytes are truncated or corrupt."""


class DimensionInconsistency(EmbedCacheError):
    """A collection record's length disagrees with the declared dimension."""


class ModelMismatch(EmbedCacheError):
    """A loaded collection was produced by an incompatible model."""


def _preview(text: str, limit: int = 60) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
