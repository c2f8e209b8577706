"""Per-request mutual exclusion for approve/reject.

The conditional status update in the store is what guarantees a single
certificate per request.  The lock sits in front of it so a concurrent
second approver fails fast with ConflictError instead of minting a
certificate that the store then has to roll back.

Same pattern as the other Redis-backed services: a Protocol, an in-memory
implementation for single-process dev/test, and a Redis implementation
shared by every API instance.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol, runtime_checkable
from uuid import UUID

from app.core.errors import ConflictError

logger = logging.getLogger(__name__)

_BUSY_REASON = "request is being processed by another approver"


@runtime_checkable
class ApprovalLock(Protocol):
    def hold(self, request_id: UUID) -> AbstractAsyncContextManager[None]:
        """Hold the lock for the block.  Raises ConflictError if taken."""
        ...


class InMemoryApprovalLock:
    def __init__(self) -> None:
        self._held: set[UUID] = set()

    @asynccontextmanager
    async def hold(self, request_id: UUID) -> AsyncIterator[None]:
        # Check-and-add with no await between them, so it is atomic on
        # the event loop.
        if request_id in self._held:
            logger.warning("Approval lock busy request_id=%s", request_id)
            raise ConflictError(_BUSY_REASON)
        self._held.add(request_id)
        try:
            yield
        finally:
            self._held.discard(request_id)

    def clear(self) -> None:
        self._held.clear()


class RedisApprovalLock:
    """SET NX PX lock with an owner token.

    The TTL bounds how long a crashed holder can block a request.  Release
    is a compare-and-delete Lua script so a holder whose TTL lapsed never
    deletes a lock that someone else has since acquired.
    """

    _RELEASE_SCRIPT = """
    if redis.call('GET', KEYS[1]) == ARGV[1] then
        return redis.call('DEL', KEYS[1])
    end
    return 0
    """

    def __init__(self, redis_client, *, ttl_seconds: int = 30) -> None:
        self._redis = redis_client
        self._ttl_ms = ttl_seconds * 1000
        self._script = None

    async def _get_script(self):
        if self._script is None:
            self._script = self._redis.register_script(self._RELEASE_SCRIPT)
        return self._script

    @asynccontextmanager
    async def hold(self, request_id: UUID) -> AsyncIterator[None]:
        key = f"approval:{request_id}"
        token = secrets.token_hex(16)
        acquired = await self._redis.set(key, token, nx=True, px=self._ttl_ms)
        if not acquired:
            logger.warning("Approval lock busy request_id=%s", request_id)
            raise ConflictError(_BUSY_REASON)
        try:
            yield
        finally:
            script = await self._get_script()
            await script(keys=[key], args=[token])
