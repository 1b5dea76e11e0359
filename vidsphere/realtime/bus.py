"""Outbound event queue between mutations and connected clients.

Mutations call ``publish`` after their transaction commits. Publishing only
enqueues; a dispatcher task drains the queue and fans events out, so a slow or
failing delivery can never block or roll back the write that produced it.

With ``fanout_client`` set, the dispatcher pushes events through a Redis
pub/sub channel instead of delivering them directly, and a listener task
delivers whatever arrives on that channel to this process's sockets. That lets
every API worker see events produced by any other worker.
"""
import asyncio
import contextlib
import json
import logging

import redis.asyncio as aioredis
from fastapi.encoders import jsonable_encoder
from redis.exceptions import RedisError

from vidsphere.realtime.manager import ConnectionManager

logger = logging.getLogger(__name__)


class NotificationBus:
    def __init__(
        self,
        manager: ConnectionManager,
        queue_size: int = 10000,
        fanout_client: aioredis.Redis | None = None,
        fanout_channel: str = "vidsphere:events",
    ):
        self.manager = manager
        self.queue: asyncio.Queue[tuple[str, dict]] = asyncio.Queue(maxsize=queue_size)
        self.fanout_client = fanout_client
        self.fanout_channel = fanout_channel
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def publish(self, channel: str, payload: dict) -> bool:
        """Queue an event for delivery. Never raises; returns False if the event was dropped."""
        try:
            self.queue.put_nowait((channel, jsonable_encoder(payload)))
            return True
        except asyncio.QueueFull:
            logger.warning("Event queue full, dropping event for channel %s", channel)
        except Exception:
            logger.exception("Could not queue event for channel %s", channel)
        return False

    async def start(self) -> None:
        if self.running:
            return
        self._tasks = [asyncio.create_task(self._dispatch(), name="notification-dispatcher")]
        if self.fanout_client is not None:
            self._tasks.append(asyncio.create_task(self._listen(), name="notification-fanout-listener"))
        logger.info("Notification bus started (fanout=%s)", self.fanout_client is not None)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
        if self.fanout_client is not None:
            await self.fanout_client.aclose()
        logger.info("Notification bus stopped")

    async def drain(self) -> None:
        """Wait until every queued event has been handed off."""
        await self.queue.join()

    async def _dispatch(self) -> None:
        while True:
            channel, payload = await self.queue.get()
            try:
                await self._deliver(channel, payload)
            except Exception:
                logger.exception("Event delivery failed for channel %s", channel)
            finally:
                self.queue.task_done()

    async def _deliver(self, channel: str, payload: dict) -> None:
        if self.fanout_client is not None:
            try:
                await self.fanout_client.publish(self.fanout_channel, json.dumps({"channel": channel, "data": payload}))
                return
            except (RedisError, OSError) as e:
                logger.warning("Redis fan-out publish failed, delivering locally only: %s", e)
        await self.manager.broadcast(channel, payload)

    async def _listen(self) -> None:
        pubsub = self.fanout_client.pubsub()
        await pubsub.subscribe(self.fanout_channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    event = json.loads(message["data"])
                    await self.manager.broadcast(event["channel"], event["data"])
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    logger.warning("Ignoring malformed fan-out message: %s", e)
        finally:
            with contextlib.suppress(RedisError, OSError):
                await pubsub.unsubscribe(self.fanout_channel)
                await pubsub.aclose()
