# app/db/record_store.py
"""
Record store: the key/object persistence collaborator.

Every logical entity is one JSON-compatible dict stored under
(collection, key). Two backends share the same async contract:

- InMemoryRecordStore: process-local dicts, used by tests and local development
- RedisRecordStore: one Redis hash per collection, values JSON-encoded

Multi-record writes go through put_many() so readers never observe a
half-written submission, and lock(name) gives callers a mutual-exclusion
scope for check-then-write sequences.
"""

import asyncio
import copy
import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as redis
from redis.exceptions import LockError

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

Record = dict[str, Any]
Write = tuple[str, str, Record]  # (collection, key, record)


class RecordStoreError(Exception):
    """Custom exception for record store operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class RecordStore(ABC):
    """Abstract get/put/delete/get_all contract over named collections."""

    @abstractmethod
    async def get(self, collection: str, key: str) -> Record | None:
        """Return the record or None when the key is absent."""

    @abstractmethod
    async def put(self, collection: str, key: str, record: Record) -> None:
        """Insert or replace a record."""

    @abstractmethod
    async def delete(self, collection: str, key: str) -> bool:
        """Delete a record, returning True if it existed."""

    @abstractmethod
    async def get_all(self, collection: str) -> list[Record]:
        """Return every record in a collection."""

    @abstractmethod
    async def put_many(self, writes: Iterable[Write]) -> None:
        """Apply several writes (possibly across collections) atomically."""

    @abstractmethod
    def lock(self, name: str) -> Any:
        """Async context manager holding an exclusive lock on `name`."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check the backend is reachable."""


class InMemoryRecordStore(RecordStore):
    """
    In-memory implementation of RecordStore for testing and development.

    Records are deep-copied on the way in and out so callers can never
    mutate stored state by accident. Not shared across processes.
    """

    def __init__(self, lock_timeout: float = 10.0) -> None:
        self._collections: dict[str, dict[str, Record]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._lock_timeout = lock_timeout

    async def get(self, collection: str, key: str) -> Record | None:
        record = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(record) if record is not None else None

    async def put(self, collection: str, key: str, record: Record) -> None:
        self._collections.setdefault(collection, {})[key] = copy.deepcopy(record)

    async def delete(self, collection: str, key: str) -> bool:
        return self._collections.get(collection, {}).pop(key, None) is not None

    async def get_all(self, collection: str) -> list[Record]:
        return [copy.deepcopy(record) for record in self._collections.get(collection, {}).values()]

    async def put_many(self, writes: Iterable[Write]) -> None:
        # Copy everything first; the apply loop has no await so it is atomic
        staged = [(collection, key, copy.deepcopy(record)) for collection, key, record in writes]
        for collection, key, record in staged:
            self._collections.setdefault(collection, {})[key] = record

    @asynccontextmanager
    async def lock(self, name: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(name, asyncio.Lock())
        self._lock_users[name] = self._lock_users.get(name, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self._lock_timeout)
            except TimeoutError as e:
                raise RecordStoreError(f"Timed out acquiring lock {name}", operation="lock") from e
            try:
                yield
            finally:
                lock.release()
        finally:
            # Last holder or waiter out drops the lock
            self._lock_users[name] -= 1
            if not self._lock_users[name]:
                del self._lock_users[name]
                del self._locks[name]

    async def ping(self) -> bool:
        return True


class RedisRecordStore(RecordStore):
    """
    Redis-backed RecordStore.

    Layout:
        <namespace>:<collection>      HASH  key -> JSON record
        <namespace>:lock:<name>       redis-py Lock key
    """

    def __init__(self, client: redis.Redis, namespace: str = "career", lock_timeout: float = 10.0):
        self._client = client
        self._namespace = namespace
        self._lock_timeout = lock_timeout

    def _hash_key(self, collection: str) -> str:
        return f"{self._namespace}:{collection}"

    async def get(self, collection: str, key: str) -> Record | None:
        try:
            raw = await self._client.hget(self._hash_key(collection), key)
        except redis.RedisError as e:
            logger.error("Redis HGET failed", collection=collection, key=key[:40], error=str(e))
            raise RecordStoreError(f"Read failed: {e}", operation="get") from e
        return json.loads(raw) if raw else None

    async def put(self, collection: str, key: str, record: Record) -> None:
        try:
            await self._client.hset(self._hash_key(collection), key, json.dumps(record))
        except redis.RedisError as e:
            logger.error("Redis HSET failed", collection=collection, key=key[:40], error=str(e))
            raise RecordStoreError(f"Write failed: {e}", operation="put") from e

    async def delete(self, collection: str, key: str) -> bool:
        try:
            removed = await self._client.hdel(self._hash_key(collection), key)
        except redis.RedisError as e:
            logger.error("Redis HDEL failed", collection=collection, key=key[:40], error=str(e))
            raise RecordStoreError(f"Delete failed: {e}", operation="delete") from e
        return removed > 0

    async def get_all(self, collection: str) -> list[Record]:
        try:
            values = await self._client.hvals(self._hash_key(collection))
        except redis.RedisError as e:
            logger.error("Redis HVALS failed", collection=collection, error=str(e))
            raise RecordStoreError(f"Scan failed: {e}", operation="get_all") from e
        return [json.loads(value) for value in values]

    async def put_many(self, writes: Iterable[Write]) -> None:
        writes = list(writes)
        if not writes:
            return
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                for collection, key, record in writes:
                    pipe.hset(self._hash_key(collection), key, json.dumps(record))
                await pipe.execute()
        except redis.RedisError as e:
            logger.error("Redis MULTI write failed", write_count=len(writes), error=str(e))
            raise RecordStoreError(f"Transaction failed: {e}", operation="put_many") from e

        logger.debug("Record batch committed", write_count=len(writes))

    @asynccontextmanager
    async def lock(self, name: str) -> AsyncIterator[None]:
        redis_lock = self._client.lock(
            f"{self._namespace}:lock:{name}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_timeout,
        )
        try:
            acquired = await redis_lock.acquire()
        except redis.RedisError as e:
            raise RecordStoreError(f"Lock backend error: {e}", operation="lock") from e
        if not acquired:
            raise RecordStoreError(f"Timed out acquiring lock {name}", operation="lock")
        try:
            yield
        finally:
            try:
                await redis_lock.release()
            except LockError:
                # Lock expired while held; the next holder already owns it
                logger.warning("Redis lock expired before release", lock_name=name)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except redis.RedisError as e:
            logger.error("Redis ping failed", error=str(e))
            return False
