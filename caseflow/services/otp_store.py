from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable
from typing import Protocol

from caseflow.config import settings

logger = logging.getLogger("caseflow.otp.store")


class OtpStore(Protocol):
    """Key-value store with per-key TTL.

    `delete` must be atomic and report whether *this* call removed the key;
    the OTP gate relies on it to let exactly one concurrent verifier win.
    `incr_attempts` atomically bumps the failed-attempt counter of a live key
    and returns the new value, or None once the key is gone.
    """

    async def get(self, key: str) -> dict | None: ...

    async def set(self, key: str, value: dict, *, ttl_seconds: int) -> None: ...

    async def incr_attempts(self, key: str) -> int | None: ...

    async def delete(self, key: str) -> bool: ...

    async def purge_expired(self) -> int: ...


class RedisOtpStore:
    def __init__(self, client, *, prefix: str = "caseflow:otp:") -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str | None = None) -> "RedisOtpStore":
        import redis.asyncio as redis

        return cls(redis.from_url(url or settings.redis_url, decode_responses=True))

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _attempts_key(self, key: str) -> str:
        return f"{self._prefix}{key}:attempts"

    async def get(self, key: str) -> dict | None:
        raw = await self._client.get(self._key(key))
        return json.loads(raw) if raw else None

    async def set(self, key: str, value: dict, *, ttl_seconds: int) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(self._key(key), json.dumps(value), ex=ttl_seconds)
            pipe.delete(self._attempts_key(key))
            await pipe.execute()

    async def incr_attempts(self, key: str) -> int | None:
        # INCR is atomic; the counter lives beside the value and expires with it.
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(self._attempts_key(key))
            pipe.pttl(self._key(key))
            attempts, ttl_ms = await pipe.execute()

        if ttl_ms == -2:
            await self._client.delete(self._attempts_key(key))
            return None
        if ttl_ms > 0:
            await self._client.pexpire(self._attempts_key(key), ttl_ms)
        return int(attempts)

    async def delete(self, key: str) -> bool:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(self._key(key))
            pipe.delete(self._attempts_key(key))
            removed, _ = await pipe.execute()
        return bool(removed)

    async def purge_expired(self) -> int:
        # Redis evicts on TTL.
        return 0


class MemoryOtpStore:
    """Single-process store for development and tests."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[dict, float]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> dict | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> dict | None:
        async with self._lock:
            value = self._live(key)
            return dict(value) if value is not None else None

    async def set(self, key: str, value: dict, *, ttl_seconds: int) -> None:
        async with self._lock:
            self._data[key] = (dict(value), self._clock() + ttl_seconds)

    async def incr_attempts(self, key: str) -> int | None:
        async with self._lock:
            value = self._live(key)
            if value is None:
                return None
            value["attempts"] = int(value.get("attempts", 0)) + 1
            return value["attempts"]

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._data.pop(key, None) is not None

    async def purge_expired(self) -> int:
        async with self._lock:
            now = self._clock()
            expired = [k for k, (_, exp) in self._data.items() if now >= exp]
            for k in expired:
                del self._data[k]
            return len(expired)

    def __len__(self) -> int:
        return len(self._data)


def build_otp_store(backend: str | None = None) -> OtpStore:
    backend = backend or settings.otp_store_backend
    if backend == "memory":
        return MemoryOtpStore()
    if backend == "redis":
        return RedisOtpStore.from_url()
    raise ValueError(f"unknown otp_store_backend: {backend}")
