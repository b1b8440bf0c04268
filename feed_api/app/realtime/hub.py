"""
Notification hub: fan-out of mutation events to live connections.

Writers never talk to sockets.  The mutation handler calls ``publish``,
which drops the event onto the hub's inbound channel and returns
immediately.  The broadcast loop (``start``/``stop``) drains that channel
and hands each event to every registered connection's outbound queue.
Each WebSocket endpoint then pumps its own queue to its socket.

Delivery is best-effort.  A connection whose queue is full loses that
event; nothing is retried and nothing is reported back to the writer.
There is no history: a connection only sees events broadcast while it
is registered.

``register``, ``unregister`` and the iteration inside ``broadcast`` take
the same lock, so a broadcast never hands an event to a connection that
is part-way through being removed.  Queue puts never wait, so holding
the lock for the whole iteration is cheap.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..core.errors import NotificationDeliveryFailure


logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class MutationEvent:
    action: Action
    resource: Dict[str, Any]

    def to_message(self) -> Dict[str, Any]:
        return {"action": self.action.value, "resource": self.resource}


@dataclass(eq=False)
class Connection:
    """One live client as seen by the hub."""

    subscriber_id: Optional[int] = None
    queue_size: int = 100
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    queue: asyncio.Queue = field(init=False)

    def __post_init__(self) -> None:
        self.queue = asyncio.Queue(maxsize=self.queue_size)

    async def next_message(self) -> Dict[str, Any]:
        return await self.queue.get()


class NotificationHub:
    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._connections: Dict[str, Connection] = {}
        self._lock = asyncio.Lock()
        self._inbound: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def connect(self, subscriber_id: Optional[int] = None) -> Connection:
        """Create a connection handle sized for this hub.  Not yet registered."""
        return Connection(subscriber_id=subscriber_id, queue_size=self.queue_size)

    async def register(self, connection: Connection) -> None:
        async with self._lock:
            self._connections[connection.id] = connection
        logger.info(
            "Connection %s registered (subscriber=%s, total=%d)",
            connection.id,
            connection.subscriber_id,
            len(self._connections),
        )

    async def unregister(self, connection: Connection) -> None:
        async with self._lock:
            removed = self._connections.pop(connection.id, None)
        if removed is not None:
            logger.info("Connection %s unregistered (total=%d)", connection.id, len(self._connections))

    def publish(self, event: MutationEvent) -> None:
        """Queue ``event`` for broadcast.  Never blocks, never raises."""
        try:
            self._inbound.put_nowait(event)
        except Exception:
            logger.exception("Dropping %s event: hub inbound channel unavailable", event.action.value)

    async def broadcast(self, event: MutationEvent) -> int:
        """Hand ``event`` to every registered connection.

        Returns the number of connections that accepted it.
        """
        message = event.to_message()
        delivered = 0
        async with self._lock:
            for connection in self._connections.values():
                try:
                    connection.queue.put_nowait(message)
                except asyncio.QueueFull:
                    failure = NotificationDeliveryFailure(connection.id, "outbound queue full")
                    logger.warning("%s", failure)
                    continue
                delivered += 1
        logger.debug("Broadcast %s to %d connection(s)", event.action.value, delivered)
        return delivered

    async def run(self) -> None:
        """Drain the inbound channel forever."""
        while True:
            event = await self._inbound.get()
            try:
                await self.broadcast(event)
            except Exception:
                logger.exception("Broadcast of %s event failed", event.action.value)
            finally:
                self._inbound.task_done()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="notification-hub")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def drain(self) -> None:
        """Wait until every published event has been broadcast."""
        await self._inbound.join()
