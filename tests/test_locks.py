import asyncio

import pytest

from flog_economy.core.locks import UserLockRegistry

async def test_same_key_is_serialized():
    locks = UserLockRegistry()
    events = []

    async def worker(name):
        async with locks.hold("alice"):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])

async def test_different_keys_do_not_block():
    locks = UserLockRegistry()
    entered = asyncio.Event()

    async def holder():
        async with locks.hold("alice"):
            await asyncio.wait_for(entered.wait(), timeout=1)

    async def other():
        async with locks.hold("bob"):
            entered.set()

    await asyncio.gather(holder(), other())

async def test_reentrant_for_owning_task():
    locks = UserLockRegistry()
    async with locks.hold("alice"):
        async with locks.hold("alice", "bob"):
            assert locks.is_held("alice")
            assert locks.is_held("bob")
        assert locks.is_held("alice")
        assert not locks.is_held("bob")
    assert not locks.is_held("alice")

async def test_idle_locks_are_dropped():
    locks = UserLockRegistry()
    async with locks.hold("alice", "bob"):
        assert len(locks) == 2
    assert len(locks) == 0

async def test_opposite_order_requests_do_not_deadlock():
    locks = UserLockRegistry()

    async def transfer(first, second):
        async with locks.hold(first, second):
            await asyncio.sleep(0.01)

    await asyncio.wait_for(
        asyncio.gather(transfer("alice", "bob"), transfer("bob", "alice")),
        timeout=1,
    )

async def test_release_on_error():
    locks = UserLockRegistry()
    with pytest.raises(RuntimeError):
        async with locks.hold("alice"):
            raise RuntimeError("boom")
    assert not locks.is_held("alice")
    assert len(locks) == 0
