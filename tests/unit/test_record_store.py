import asyncio

import pytest
import redis.asyncio as redis

from app.db.record_store import InMemoryRecordStore, RecordStoreError, RedisRecordStore


@pytest.mark.asyncio
async def test_put_get_delete(record_store):
    await record_store.put("things", "a", {"value": 1})

    assert await record_store.get("things", "a") == {"value": 1}
    assert await record_store.get("things", "missing") is None
    assert await record_store.delete("things", "a") is True
    assert await record_store.delete("things", "a") is False


@pytest.mark.asyncio
async def test_records_are_copied(record_store):
    record = {"tags": ["x"]}
    await record_store.put("things", "a", record)
    record["tags"].append("y")

    stored = await record_store.get("things", "a")
    stored["tags"].append("z")

    assert await record_store.get("things", "a") == {"tags": ["x"]}


@pytest.mark.asyncio
async def test_put_many_spans_collections(record_store):
    await record_store.put_many(
        [
            ("responses", "r1", {"id": "r1"}),
            ("responses", "r2", {"id": "r2"}),
            ("invitations", "i1", {"status": "completed"}),
        ]
    )

    assert sorted(record["id"] for record in await record_store.get_all("responses")) == ["r1", "r2"]
    assert await record_store.get("invitations", "i1") == {"status": "completed"}
    assert await record_store.get_all("empty") == []


@pytest.mark.asyncio
async def test_lock_serializes_holders(record_store):
    order = []

    async def worker(name: str):
        async with record_store.lock("session:1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
    assert record_store._locks == {}


@pytest.mark.asyncio
async def test_lock_timeout_raises():
    store = InMemoryRecordStore(lock_timeout=0.05)

    async with store.lock("invitation:1"):
        with pytest.raises(RecordStoreError) as exc_info:
            async with store.lock("invitation:1"):
                pass

    assert exc_info.value.operation == "lock"
    assert store._locks == {}


@pytest.mark.asyncio
async def test_released_locks_are_forgotten(record_store):
    for index in range(50):
        async with record_store.lock(f"invitation:{index}"):
            pass

    assert record_store._locks == {}


class BrokenRedis:
    async def hget(self, *args):
        raise redis.ConnectionError("down")

    async def hset(self, *args):
        raise redis.ConnectionError("down")

    async def ping(self):
        raise redis.ConnectionError("down")


class DictRedis:
    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}

    async def hget(self, name, key):
        return self.hashes.get(name, {}).get(key)

    async def hset(self, name, key, value):
        self.hashes.setdefault(name, {})[key] = value
        return 1

    async def hvals(self, name):
        return list(self.hashes.get(name, {}).values())


@pytest.mark.asyncio
async def test_redis_store_wraps_backend_errors():
    store = RedisRecordStore(BrokenRedis())

    with pytest.raises(RecordStoreError) as exc_info:
        await store.get("things", "a")
    assert exc_info.value.operation == "get"

    with pytest.raises(RecordStoreError):
        await store.put("things", "a", {"value": 1})

    assert await store.ping() is False


@pytest.mark.asyncio
async def test_redis_store_uses_namespaced_hashes():
    client = DictRedis()
    store = RedisRecordStore(client, namespace="test")

    await store.put("things", "a", {"value": 1})

    assert "test:things" in client.hashes
    assert await store.get("things", "a") == {"value": 1}
    assert await store.get_all("things") == [{"value": 1}]
