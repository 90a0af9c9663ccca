import asyncio
import contextlib
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from friendzone.core.config import settings
from friendzone.utils.redis_pool import get_redis

log = logging.getLogger(__name__)

LOCK_PREFIX = "lock"

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class AdvisoryLock:
    
    def __init__(
        self,
        name: str,
        client: redis.Redis,
        timeout: int = 30,
        retry_count: int = 3,
        retry_delay: float = 0.1,
    ):
        self.name = f"{LOCK_PREFIX}:{name}"
        self.client = client
        self.timeout = timeout
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self.token: Optional[str] = None
    
    async def acquire(self) -> bool:
        self.token = str(uuid.uuid4())
        
        for attempt in range(self.retry_count):
            acquired = await self.client.set(
                self.name,
                self.token,
                nx=True,
                ex=self.timeout,
            )
            if acquired:
                log.debug("Lock acquired: %s", self.name)
                return True
            
            if attempt < self.retry_count - 1:
                await asyncio.sleep(self.retry_delay * (attempt + 1))
        
        log.warning("Failed to acquire lock after %d attempts: %s", self.retry_count, self.name)
        return False
    
    async def release(self):
        if not self.token:
            return
        try:
            await self.client.eval(_RELEASE_SCRIPT, 1, self.name, self.token)
            log.debug("Lock released: %s", self.name)
        except RedisError as e:
            log.error("Failed to release lock %s: %s", self.name, e)
        finally:
            self.token = None


@asynccontextmanager
async def advisory_lock(
    name: str,
    client: redis.Redis | None = None,
    timeout: int = 30,
    retry_count: int = 3,
    retry_delay: float = 0.1,
):
    """Hold a Redis lock for the block. Raises TimeoutError when it cannot be taken."""
    lock = AdvisoryLock(name, client or await get_redis(), timeout, retry_count, retry_delay)
    if not await lock.acquire():
        raise TimeoutError(f"lock {lock.name} is held by another worker")
    try:
        yield lock
    finally:
        await lock.release()


def knock_pair_lock(pair: str):
    """Pair lock for knock writes; a no-op unless PAIR_LOCK_ENABLED is set."""
    if not settings.PAIR_LOCK_ENABLED:
        return contextlib.nullcontext()
    return advisory_lock(f"knock:{pair}", timeout=settings.PAIR_LOCK_TIMEOUT)
