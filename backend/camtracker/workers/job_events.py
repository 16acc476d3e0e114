# backend/camtracker/workers/job_events.py
"""
Typed job lifecycle notifications.

The queue publishes JobEvents; observers either subscribe a callback or
open a listener channel (an asyncio.Queue) and consume events at their own
pace. Events are notifications only and never feed back into scheduling.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

from loguru import logger

from ..enums import JobEventType
from ..models.job_model import Job
from ..utils.time_utils import utc_now

LISTENER_QUEUE_SIZE = 1000

JobEventCallback = Callable[["JobEvent"], Any]


@dataclass
class JobEvent:
    type: JobEventType
    job: Optional[Job] = None
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "job": self.job.model_dump(mode="json") if self.job else None,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


class JobEventBus:
    """Fan-out of job events to callbacks and listener queues."""

    def __init__(self) -> None:
        self._subscribers: List[JobEventCallback] = []
        self._listeners: Set[asyncio.Queue] = set()
        self._pending_callbacks: Set[asyncio.Task] = set()

    def subscribe(self, callback: JobEventCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def listen(self, maxsize: int = LISTENER_QUEUE_SIZE) -> asyncio.Queue:
        """Open a listener channel. Oldest events are dropped when it is full."""
        channel: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._listeners.add(channel)
        return channel

    def unlisten(self, channel: asyncio.Queue) -> None:
        self._listeners.discard(channel)

    def emit(self, event: JobEvent) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._pending_callbacks.add(task)
                    task.add_done_callback(self._on_callback_done)
            except Exception as e:
                logger.error(f"Job event observer failed on {event.type.value}: {e}")

        for channel in list(self._listeners):
            if channel.full():
                channel.get_nowait()
            channel.put_nowait(event)

    def _on_callback_done(self, task: asyncio.Task) -> None:
        self._pending_callbacks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async job event observer failed: {task.exception()}")
