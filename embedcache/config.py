"""Load and validate configuration from YAML with env var substitution."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from embedcache.batch import DEFAULT_MAX_WORKERS, DEFAULT_PARALLEL_THRESHOLD
from embedcache.cache import POLICIES

logger = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _load_dotenv(path: str | Path = ".env") -> None:
    """Load a .env file into os.environ (without overwriting existing vars)."""
    env_path = Path(path)
    if not env_path.is_file():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip("'\"")
            if key and key not in os.environ:
                os.environ[key] = value


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} patterns in config values."""
    if isinstance(value, str):
        match = _ENV_PATTERN.search(value)
        if match:
            # If the entire string is a single env var, return the resolved value
            if match.group(0) == value:
                return os.environ.get(match.group(1), "")
            return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), ""), value)
        return value
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config(path: str | Path = "config.yaml", missing_ok: bool = False) -> dict[str, Any]:
    """Load config from YAML file and resolve environment variables.

    With ``missing_ok`` a missing file yields an empty config, so every
    section falls back to its defaults.
    """
    _load_dotenv()

    path = Path(path)
    if not path.exists():
        if missing_ok:
            logger.debug("No config file at %s, using defaults", path)
            return {}
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(raw).__name__}")
    return _resolve_env_vars(raw)


def _optional_int(value: Any) -> int | None:
    if value in (None, ""):
        return None
    return int(value)


def get_encoder_config(config: dict) -> dict:
    """Constructor arguments for the configured encoder, plus its ``type``."""
    enc = config.get("encoder", {})
    encoder_type = enc.get("type", "model2vec")
    cfg = {
        "type": encoder_type,
        "model_name": enc.get("model", "minishlab/potion-base-8M"),
        "model_version": str(enc.get("version", "")),
        "dimension": _optional_int(enc.get("dimension")),
    }
    if encoder_type == "openai_compatible":
        if cfg["dimension"] is None:
            raise ValueError("encoder.dimension is required for openai_compatible encoders")
        cfg.update({
            "base_url": enc.get("base_url", ""),
            "api_key": enc.get("api_key", ""),
            "max_retries": int(enc.get("max_retries", 3)),
            "timeout": int(enc.get("timeout", 60)),
        })
    return cfg


def get_cache_config(config: dict) -> dict:
    """Cache capacity and eviction policy."""
    cache = config.get("cache", {})
    capacity = int(cache.get("capacity", 10_000))
    policy = str(cache.get("policy", "fifo")).lower()
    if capacity < 0:
        raise ValueError(f"cache.capacity must be >= 0, got {capacity}")
    if policy not in POLICIES:
        raise ValueError(f"cache.policy must be one of {', '.join(POLICIES)}, got {policy!r}")
    return {"capacity": capacity, "policy": policy}


def get_batch_config(config: dict) -> dict:
    """Thread pool settings for batch embedding."""
    batch = config.get("batch", {})
    threshold = int(batch.get("parallel_threshold", DEFAULT_PARALLEL_THRESHOLD))
    workers = int(batch.get("max_workers", DEFAULT_MAX_WORKERS))
    if workers < 1:
        raise ValueError(f"batch.max_workers must be >= 1, got {workers}")
    return {"parallel_threshold": max(threshold, 0), "max_workers": workers}


def get_service_config(config: dict) -> dict:
    """Facade behaviour flags."""
    service = config.get("service", {})
    return {
        "preprocess": bool(service.get("preprocess", False)),
        "strict_model": bool(service.get("strict_model", True)),
    }


def get_logging_config(config: dict) -> dict:
    """Log level and optional log file path."""
    log = config.get("logging", {})
    return {
        "level": str(log.get("level", "INFO")).upper(),
        "file": log.get("file") or None,
    }
