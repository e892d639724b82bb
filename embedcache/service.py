"""Embedding service: cache, encoder, ranking and persistence in one place."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import BinaryIO

import numpy as np

from embedcache import ranker
from embedcache.batch import embed_all
from embedcache.cache import EmbeddingCache
from embedcache.codec import build_collection, read_collection, write_collection
from embedcache.config import get_batch_config, get_cache_config, get_service_config
from embedcache.encoders.base import BaseEncoder
from embedcache.errors import (
    AlreadyInitialized,
    BatchEncodeError,
    DimensionMismatch,
    EncodeError,
    ModelMismatch,
    NotInitialized,
)
from embedcache.models import EmbeddingCollection, EmbeddingStats, SimilarityResult
from embedcache.text import preprocess_text
from embedcache.vector_math import as_vector, normalize

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Cache-backed embedding, similarity search and collection persistence.

    The service starts uninitialized; ``initialize`` binds an encoder exactly
    once (or pass ``encoder=`` to the constructor). All embedding and
    persistence operations raise ``NotInitialized`` until then.

    Every vector the service returns is unit length (or all zeros) and owned
    by the caller.
    """

    def __init__(self, config: dict | None = None, encoder: BaseEncoder | None = None):
        config = config or {}
        self._cache_cfg = get_cache_config(config)
        self._batch_cfg = get_batch_config(config)
        service_cfg = get_service_config(config)
        self.preprocess = service_cfg["preprocess"]
        self.strict_model = service_cfg["strict_model"]

        self._encoder: BaseEncoder | None = None
        self._cache: EmbeddingCache | None = None
        self._stats = EmbeddingStats()
        self._stats_lock = threading.Lock()

        if encoder is not None:
            self.initialize(encoder)

    # --- Lifecycle ---

    def initialize(self, encoder: BaseEncoder) -> None:
        """Bind the encoder and size the cache to its dimension."""
        if self._encoder is not None:
            raise AlreadyInitialized(
                f"Embedding service is already bound to {self._encoder.model_name}"
            )
        dimension = encoder.dimension
        self._cache = EmbeddingCache(
            capacity=self._cache_cfg["capacity"],
            dimension=dimension,
            policy=self._cache_cfg["policy"],
        )
        self._encoder = encoder
        logger.info(
            "Embedding service ready: %s (dim=%d, cache=%d, policy=%s)",
            encoder.model_name, dimension,
            self._cache_cfg["capacity"], self._cache_cfg["policy"],
        )

    @property
    def initialized(self) -> bool:
        return self._encoder is not None

    def _require_encoder(self) -> BaseEncoder:
        if self._encoder is None:
            raise NotInitialized("Embedding service has no encoder; call initialize() first")
        return self._encoder

    @property
    def model_name(self) -> str:
        return self._require_encoder().model_name

    @property
    def model_version(self) -> str:
        return self._require_encoder().model_version

    @property
    def dimension(self) -> int:
        return self._require_encoder().dimension

    # --- Embedding ---

    def embed_text(self, text: str) -> np.ndarray:
        """Embed one text, serving from the cache when possible."""
        encoder = self._require_encoder()
        key = preprocess_text(text) if self.preprocess else text

        cached = self._cache.get(key)
        if cached is not None:
            with self._stats_lock:
                self._stats.cache_hits += 1
            return cached

        with self._stats_lock:
            self._stats.cache_misses += 1

        start = time.perf_counter()
        try:
            raw = encoder.embed_text(key)
        except EncodeError:
            with self._stats_lock:
                self._stats.encode_errors += 1
            raise
        vec = as_vector(raw)
        if vec.shape[0] != self._cache.dimension:
            raise DimensionMismatch(
                f"Encoder {encoder.model_name} returned {vec.shape[0]} values for "
                f"{text[:60]!r}, expected {self._cache.dimension}"
            )
        vec = normalize(vec)
        elapsed = time.perf_counter() - start

        self._cache.insert(key, vec)
        with self._stats_lock:
            self._stats.embeddings_count += 1
            self._stats.processing_time += elapsed
        return vec

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Embed many texts, in parallel above the configured threshold.

        Raises BatchEncodeError after the whole batch has run if any text
        failed; the vectors computed for the others stay cached.
        """
        self._require_encoder()
        items = embed_all(self, list(texts), **self._batch_cfg)
        failures = [(item.index, item.text, item.error) for item in items if not item.ok]
        if failures:
            raise BatchEncodeError(failures, len(items))
        return [item.vector for item in items]

    def find_similar(
        self, query: str, candidates: list[str], top_k: int = 5,
    ) -> list[SimilarityResult]:
        """Rank candidate texts by similarity to ``query``.

        Candidates that fail to embed are skipped and logged.
        """
        self._require_encoder()
        query_vec = self.embed_text(query)
        items = embed_all(self, list(candidates), **self._batch_cfg)

        embedded = [(item.text, item.vector) for item in items if item.ok]
        skipped = len(items) - len(embedded)
        if skipped:
            logger.warning(
                "Skipped %d/%d candidates that failed to embed", skipped, len(items),
            )

        return ranker.top_k(ranker.rank(query_vec, embedded), top_k)

    def search_collection(
        self, query: str, collection: EmbeddingCollection, top_k: int = 5,
    ) -> list[SimilarityResult]:
        """Rank stored records against ``query`` without re-embedding them.

        Records without text are identified as ``#<index>``.
        """
        query_vec = self.embed_text(query)
        candidates = [
            (record.text or f"#{i}", record.values)
            for i, record in enumerate(collection.records)
        ]
        return ranker.top_k(ranker.rank(query_vec, candidates), top_k)

    # --- Persistence ---

    def save(
        self,
        sink: str | Path | BinaryIO,
        vectors: list[np.ndarray],
        texts: list[str] | None = None,
    ) -> EmbeddingCollection:
        """Write vectors (and optional texts) tagged with this service's model."""
        encoder = self._require_encoder()
        collection = build_collection(
            vectors,
            texts,
            model_name=encoder.model_name,
            model_version=encoder.model_version,
            dimension=encoder.dimension,
        )
        write_collection(collection, sink)
        return collection

    def load_collection(self, source: str | Path | BinaryIO | bytes) -> EmbeddingCollection:
        """Read a collection and check it was produced by a compatible model."""
        encoder = self._require_encoder()
        collection = read_collection(source)
        self._check_provenance(collection, encoder)
        return collection

    def load(
        self, source: str | Path | BinaryIO | bytes,
    ) -> tuple[list[np.ndarray], list[str] | None]:
        """Read a collection and return its vectors and texts."""
        return self.load_collection(source).vectors_and_texts()

    def _check_provenance(self, collection: EmbeddingCollection, encoder: BaseEncoder) -> None:
        if collection.dimension != encoder.dimension:
            raise ModelMismatch(
                f"Collection has dimension {collection.dimension} "
                f"({collection.model_name or 'unknown model'}), "
                f"service uses {encoder.dimension} ({encoder.model_name})"
            )
        if not collection.model_name:
            logger.warning("Collection does not record its model; assuming %s", encoder.model_name)
        elif collection.model_name != encoder.model_name:
            if self.strict_model:
                raise ModelMismatch(
                    f"Collection was produced by {collection.model_name}, "
                    f"service uses {encoder.model_name}"
                )
            logger.warning(
                "Loading %s embeddings into a %s service",
                collection.model_name, encoder.model_name,
            )
        if collection.model_version != encoder.model_version:
            logger.warning(
                "Model version differs: collection %r, service %r",
                collection.model_version, encoder.model_version,
            )

    # --- Stats ---

    def stats(self) -> dict:
        """Counters plus current cache occupancy."""
        with self._stats_lock:
            result = self._stats.to_dict()
        result["cache_size"] = len(self._cache) if self._cache is not None else 0
        result["cache_capacity"] = self._cache_cfg["capacity"]
        return result

    def clear_cache(self) -> None:
        """Drop every cached vector and reset the counters."""
        if self._cache is not None:
            self._cache.clear()
        with self._stats_lock:
            self._stats = EmbeddingStats()
