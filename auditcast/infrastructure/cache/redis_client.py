# auditcast/infrastructure/cache/redis_client.py

from typing import Optional

import redis.asyncio as redis

from auditcast.config.settings import settings


class RedisClient:
    def __init__(self, url: Optional[str] = None):
        self.client = redis.from_url(
            url or settings.redis_url,
            decode_responses=True,
        )

    async def publish(self, channel: str, message: str) -> int:
        """Publish message on channel. Returns the number of subscribers that received it."""
        return await self.client.publish(channel, message)

    def pubsub(self):
        return self.client.pubsub()

    async def close(self) -> None:
        await self.client.aclose()
