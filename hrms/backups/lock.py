from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.asyncio import from_url as redis_from_url

from hrms.backups.errors import BackupInProgress

logger = logging.getLogger(__name__)

LOCK_NAME = "hrms:backup:mutation"


class BackupLock:
  """Allows at most one create or restore at a time.

  With a redis URL the lock is a lease shared by every process pointing at the
  same redis; otherwise it only covers the current process.
  """

  def __init__(self, *, wait_seconds: float, lease_seconds: int, redis_url: str | None = None) -> None:
    self.wait_seconds = wait_seconds
    self.lease_seconds = lease_seconds
    self._local = asyncio.Lock()
    self._redis = redis_from_url(redis_url, encoding="utf-8", decode_responses=True) if redis_url else None

  @asynccontextmanager
  async def hold(self, operation: str) -> AsyncIterator[None]:
    if self._redis is not None:
      async with self._hold_redis(operation):
        yield
      return
    try:
      await asyncio.wait_for(self._local.acquire(), timeout=self.wait_seconds)
    except asyncio.TimeoutError as exc:
      raise BackupInProgress(
        "Another backup or restore operation is in progress", details={"operation": operation}
      ) from exc
    try:
      logger.debug("backup lock acquired for %s", operation)
      yield
    finally:
      self._local.release()

  @asynccontextmanager
  async def _hold_redis(self, operation: str) -> AsyncIterator[None]:
    lock = self._redis.lock(LOCK_NAME, timeout=self.lease_seconds, blocking_timeout=self.wait_seconds)
    if not await lock.acquire():
      raise BackupInProgress("Another backup or restore operation is in progress", details={"operation": operation})
    try:
      logger.debug("backup lease acquired for %s", operation)
      yield
    finally:
      await lock.release()

  def locked(self) -> bool:
    return self._local.locked()

  async def aclose(self) -> None:
    if self._redis is not None:
      await self._redis.aclose()
