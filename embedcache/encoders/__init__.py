"""Encoder registry and construction from config."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from embedcache.encoders.base import BaseEncoder

ENCODERS: dict[str, type[BaseEncoder]] = {}


def register_encoder(name: str):
    """Decorator to register an encoder type."""

    def decorator(cls):
        ENCODERS[name] = cls
        return cls

    return decorator


def get_encoder(config: dict) -> BaseEncoder:
    """Build the encoder described by the ``encoder`` config section."""
    from embedcache.config import get_encoder_config

    enc_cfg = get_encoder_config(config)
    encoder_type = enc_cfg.pop("type")
    if encoder_type not in ENCODERS:
        raise ValueError(f"Unknown encoder type: {encoder_type}")
    return ENCODERS[encoder_type](**enc_cfg)


# Import implementations to trigger registration
from embedcache.encoders.model2vec_encoder import Model2VecEncoder  # noqa: E402, F401
from embedcache.encoders.openai_compat import OpenAICompatibleEncoder  # noqa: E402, F401
