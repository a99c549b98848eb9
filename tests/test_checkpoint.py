"""Checkpoint persistence."""

from __future__ import annotations


async def test_no_checkpoint_initially(store):
    assert await store.get_checkpoint("router") is None


async def test_checkpoint_never_decreases(store):
    await store.set_checkpoint("router", 10)
    assert await store.get_checkpoint("router") == 10

    await store.set_checkpoint("router", 5)
    assert await store.get_checkpoint("router") == 10

    await store.set_checkpoint("router", 12)
    assert await store.get_checkpoint("router") == 12


async def test_checkpoints_are_keyed_by_source(store):
    await store.set_checkpoint("router", 100)
    await store.set_checkpoint("router-v2", 7)

    assert await store.get_checkpoint("router") == 100
    assert await store.get_checkpoint("router-v2") == 7
