"""Shared test fixtures."""

from __future__ import annotations

import hashlib
import threading

import numpy as np
import pytest

from embedcache.config import load_config
from embedcache.encoders.base import BaseEncoder
from embedcache.errors import EncodeError
from embedcache.service import EmbeddingService


class FakeEncoder(BaseEncoder):
    """Deterministic encoder: vectors are seeded from a hash of the text.

    ``table`` pins exact vectors for chosen texts; texts in ``fail_on``
    raise EncodeError.
    """

    def __init__(
        self,
        dimension: int = 16,
        model_name: str = "fake-model",
        model_version: str = "v1",
        table: dict | None = None,
        fail_on=(),
    ):
        super().__init__(model_name, model_version, dimension)
        self.table = {k: np.asarray(v, dtype=np.float32) for k, v in (table or {}).items()}
        self.fail_on = set(fail_on)
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def embed_text(self, text: str) -> np.ndarray:
        with self._lock:
            self.calls.append(text)
        if text in self.fail_on:
            raise EncodeError(text, "model unavailable")
        if text in self.table:
            return self.table[text].copy()
        seed = int(hashlib.sha256(text.encode()).hexdigest()[:8], 16)
        return np.random.RandomState(seed).randn(self.dimension).astype(np.float32)


@pytest.fixture
def make_encoder():
    """Factory for FakeEncoder instances."""
    return FakeEncoder


@pytest.fixture
def fake_encoder():
    return FakeEncoder()


@pytest.fixture
def sample_config(tmp_path):
    """Minimal config for testing (no real model or API keys)."""
    config_text = """
encoder:
  type: "openai_compatible"
  model: "text-embedding-test"
  version: "2024-01"
  dimension: 16
  base_url: "http://localhost:9999/v1"
  api_key: "test-key"

cache:
  capacity: 4
  policy: "fifo"

batch:
  parallel_threshold: 3
  max_workers: 2

service:
  preprocess: false
  strict_model: true

logging:
  level: "debug"
  file: "LOG_PATH_PLACEHOLDER"
"""
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(config_text.replace("LOG_PATH_PLACEHOLDER", str(tmp_path / "embedcache.log")))
    return load_config(str(cfg_path))


@pytest.fixture
def service(fake_encoder):
    """Initialized service with a small cache and a low parallel threshold."""
    config = {
        "cache": {"capacity": 100},
        "batch": {"parallel_threshold": 4, "max_workers": 4},
    }
    return EmbeddingService(config, encoder=fake_encoder)
