import redis.asyncio as redis
from redis.asyncio.lock import Lock
from queuedesk.core.config import settings

class RedisClient:
    def __init__(self):
        self.redis = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)

    def lock(self, name: str, timeout: int) -> Lock:
        return self.redis.lock(f"lock:{name}", timeout=timeout)

    async def close(self):
        await self.redis.close()

redis_client = RedisClient()
