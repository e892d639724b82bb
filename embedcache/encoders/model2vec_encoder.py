"""Embedding generation using Model2Vec (lightweight, CPU-only)."""

from __future__ import annotations

import logging
import threading

import numpy as np

from embedcache.encoders import register_encoder
from embedcache.encoders.base import BaseEncoder
from embedcache.errors import EncodeError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "minishlab/potion-base-8M"


@register_encoder("model2vec")
class Model2VecEncoder(BaseEncoder):
    """Encoder backed by a Model2Vec static model, loaded on first use."""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        model_version: str = "",
        dimension: int | None = None,
    ):
        super().__init__(model_name, model_version, dimension)
        self._model = None
        self._load_lock = threading.Lock()

    def _get_model(self):
        """Lazy-load the embedding model."""
        if self._model is None:
            with self._load_lock:
                if self._model is None:
                    from model2vec import StaticModel

                    logger.info("Loading embedding model: %s", self.model_name)
                    self._model = StaticModel.from_pretrained(self.model_name)
        return self._model

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            self._dimension = int(self._get_model().dim)
        return self._dimension

    def embed_text(self, text: str) -> np.ndarray:
        model = self._get_model()
        try:
            vectors = model.encode([text])
        except Exception as exc:
            raise EncodeError(text, exc) from exc
        return np.asarray(vectors[0], dtype=np.float32)
