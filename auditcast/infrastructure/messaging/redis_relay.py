"""
Cross-process partition relay over Redis pub/sub.

emit() publishes to <prefix><partition>; every process runs a listener that
pattern-subscribes to <prefix>* and replays messages into its local registry.
"""

import asyncio
import json
import logging
from typing import Any, Optional

from auditcast.config.settings import settings
from auditcast.infrastructure.cache.redis_client import RedisClient
from auditcast.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

RESTART_DELAY_SECONDS = 5


class RedisPartitionRelay:
    """Connection layer that fans out through Redis. Implements ConnectionLayer."""

    def __init__(
        self,
        redis_client: RedisClient,
        registry: ConnectionRegistry,
        channel_prefix: Optional[str] = None,
    ) -> None:
        self._redis = redis_client
        self._registry = registry
        self._prefix = channel_prefix or settings.redis_channel_prefix
        self._task: Optional[asyncio.Task] = None
        self.running = False

    def channel_for(self, partition: str) -> str:
        return f"{self._prefix}{partition}"

    async def emit(self, partition: str, event_type: str, payload: Any) -> int:
        """Publish once; delivery to sockets happens in each process's listener."""
        message = json.dumps({"type": event_type, "data": payload}, default=str)
        return await self._redis.publish(self.channel_for(partition), message)

    async def start(self) -> None:
        if self.running:
            return
        self.running = True
        self._task = asyncio.create_task(self._listen())
        self._task.add_done_callback(self._handle_task_done)
        logger.info("partition_relay_started", extra={"prefix": self._prefix})

    async def stop(self) -> None:
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._redis.close()
        logger.info("partition_relay_stopped")

    async def handle_message(self, message: dict) -> int:
        """Forward one pub/sub message to local members. Returns local deliveries."""
        if message.get("type") != "pmessage":
            return 0
        channel = message.get("channel")
        if isinstance(channel, bytes):
            channel = channel.decode()
        channel = str(channel or "")
        if not channel.startswith(self._prefix):
            return 0
        partition = channel[len(self._prefix):]

        raw = message.get("data")
        if isinstance(raw, bytes):
            raw = raw.decode()
        try:
            body = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            logger.warning("partition_relay_bad_message", extra={"partition": partition})
            return 0
        return await self._registry.emit(partition, body.get("type"), body.get("data"))

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        pattern = f"{self._prefix}*"
        try:
            await pubsub.psubscribe(pattern)
            async for message in pubsub.listen():
                if not self.running:
                    break
                try:
                    await self.handle_message(message)
                except Exception as e:
                    logger.error("partition_relay_forward_failed", extra={"error": str(e)})
        finally:
            try:
                await pubsub.punsubscribe(pattern)
                await pubsub.aclose()
            except Exception as e:
                logger.error("partition_relay_close_failed", extra={"error": str(e)})

    def _handle_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error("partition_relay_failed", extra={"error": str(exc)})
        if self.running:
            asyncio.create_task(self._restart())

    async def _restart(self) -> None:
        await asyncio.sleep(RESTART_DELAY_SECONDS)
        if self.running:
            self.running = False
            await self.start()
