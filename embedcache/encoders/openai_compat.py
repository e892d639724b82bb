"""OpenAI-compatible embeddings endpoint (OpenAI, Ollama, vLLM, LM Studio, etc.)."""

from __future__ import annotations

import logging

import httpx
import numpy as np

from embedcache.encoders import register_encoder
from embedcache.encoders.base import BaseEncoder
from embedcache.errors import EncodeError
from embedcache.retry import retry_call

logger = logging.getLogger(__name__)


@register_encoder("openai_compatible")
class OpenAICompatibleEncoder(BaseEncoder):
    """Encoder for any API exposing ``POST {base_url}/embeddings``."""

    def __init__(
        self,
        model_name: str,
        dimension: int,
        base_url: str,
        api_key: str = "",
        model_version: str = "",
        max_retries: int = 3,
        timeout: int = 60,
    ):
        super().__init__(model_name, model_version, dimension)
        self.base_url = base_url
        self.api_key = api_key
        self.max_retries = max_retries
        self.timeout = timeout

    def embed_text(self, text: str) -> np.ndarray:
        try:
            return retry_call(self._do_embed, text, max_retries=self.max_retries)
        # ValueError covers a non-JSON body; the builtins are what retry_call
        # re-raises once its attempts run out
        except (httpx.HTTPError, ValueError, ConnectionError, TimeoutError) as exc:
            raise EncodeError(text, exc) from exc

    def _do_embed(self, text: str) -> np.ndarray:
        url = f"{self.base_url.rstrip('/')}/embeddings"
        payload = {"model": self.model_name, "input": text}

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        with httpx.Client(timeout=self.timeout) as client:
            resp = client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()

        try:
            embedding = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise EncodeError(text, f"unexpected response shape: {exc!r}") from exc
        return np.asarray(embedding, dtype=np.float32)
