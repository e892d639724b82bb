"""Abstract base class for text encoders."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


class BaseEncoder(ABC):
    """Turns one text into one vector.

    Implementations must be safe to call from several threads at once and
    should raise ``EncodeError`` when a text cannot be embedded.
    """

    def __init__(self, model_name: str, model_version: str = "", dimension: int | None = None):
        self._model_name = model_name
        self._model_version = model_version
        self._dimension = dimension

    @abstractmethod
    def embed_text(self, text: str) -> np.ndarray:
        """Embed a single text."""
        ...

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def model_version(self) -> str:
        return self._model_version

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            raise ValueError(f"Encoder {self.model_name} has no configured dimension")
        return self._dimension
