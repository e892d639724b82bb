"""Fan-out of embedding calls across a batch of texts."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from embedcache.errors import EncodeError

logger = logging.getLogger(__name__)

DEFAULT_PARALLEL_THRESHOLD = 10
DEFAULT_MAX_WORKERS = 4


class TextEmbedder(Protocol):
    """Anything that can embed a single text."""

    def embed_text(self, text: str) -> np.ndarray: ...


@dataclass
class BatchItem:
    """Outcome of embedding one text in a batch."""

    index: int
    text: str
    vector: np.ndarray | None = None
    error: EncodeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _embed_one(embedder: TextEmbedder, index: int, text: str) -> BatchItem:
    try:
        return BatchItem(index=index, text=text, vector=embedder.embed_text(text))
    except EncodeError as exc:
        return BatchItem(index=index, text=text, error=exc)


def embed_all(
    embedder: TextEmbedder,
    texts: list[str],
    parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[BatchItem]:
    """Embed every text, returning one BatchItem per input in input order.

    Batches larger than ``parallel_threshold`` run on a thread pool. An
    EncodeError for one text is captured on its item and does not stop the
    rest of the batch; any other exception propagates.
    """
    if len(texts) <= parallel_threshold or max_workers <= 1:
        items = [_embed_one(embedder, i, t) for i, t in enumerate(texts)]
    else:
        workers = min(max_workers, len(texts))
        logger.debug("Embedding %d texts on %d threads", len(texts), workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(_embed_one, embedder, i, t) for i, t in enumerate(texts)]
            items = [f.result() for f in futures]

    failed = sum(1 for item in items if not item.ok)
    if failed:
        logger.warning("%d/%d texts failed to embed", failed, len(texts))
    return items
