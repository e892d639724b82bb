"""Tests for batch fan-out."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from embedcache.batch import embed_all


def test_sequential_and_parallel_agree(make_encoder):
    """Both execution paths produce the same vectors in input order."""
    texts = [f"sentence number {i}" for i in range(25)]
    sequential = embed_all(make_encoder(), texts, parallel_threshold=1000)
    parallel = embed_all(make_encoder(), texts, parallel_threshold=0, max_workers=8)

    assert [i.index for i in parallel] == list(range(25))
    assert [i.text for i in parallel] == texts
    for s, p in zip(sequential, parallel):
        assert np.array_equal(s.vector, p.vector)


def test_parallel_path_uses_threads(make_encoder):
    seen_threads: set[int] = set()
    encoder = make_encoder()
    original = encoder.embed_text

    def tracking(text):
        seen_threads.add(threading.get_ident())
        return original(text)

    encoder.embed_text = tracking
    embed_all(encoder, [str(i) for i in range(20)], parallel_threshold=5, max_workers=4)
    assert threading.get_ident() not in seen_threads


def test_failures_are_captured_per_item(make_encoder, caplog):
    """One failing text does not stop the rest of the batch."""
    encoder = make_encoder(fail_on={"bad"})
    items = embed_all(encoder, ["good", "bad", "also good"], parallel_threshold=0)

    assert [item.ok for item in items] == [True, False, True]
    assert items[1].vector is None
    assert items[1].error.text == "bad"
    assert "1/3 texts failed to embed" in caplog.text


def test_other_exceptions_propagate(make_encoder):
    encoder = make_encoder()

    def broken(text):
        raise RuntimeError("bug")

    encoder.embed_text = broken
    with pytest.raises(RuntimeError, match="bug"):
        embed_all(encoder, ["a", "b"])


def test_empty_batch(make_encoder):
    assert embed_all(make_encoder(), []) == []
