"""
Kitchen events, listeners and the tick-owned timer scheduler.
"""

import heapq
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Callable, Dict, List, Optional

from kitchen_types import EventKind

logger = logging.getLogger(__name__)


@dataclass
class KitchenEvent:
    """Something that happened in the kitchen, delivered synchronously to listeners."""
    kind: EventKind
    tick: int
    message: str = ""
    instance_id: Optional[str] = None
    order_id: Optional[str] = None
    station: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "tick": self.tick,
            "message": self.message,
            "instance_id": self.instance_id,
            "order_id": self.order_id,
            "station": self.station,
            "data": self.data,
        }


class KitchenListener(ABC):
    """Receives kitchen events as the command layer produces them."""

    @abstractmethod
    def on_event(self, event: KitchenEvent):
        pass


class EventBus:
    """Registry of listeners; emitting calls each one in registration order."""

    def __init__(self):
        self._listeners: List[KitchenListener] = []

    def subscribe(self, listener: KitchenListener):
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: KitchenListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: KitchenEvent):
        for listener in list(self._listeners):
            listener.on_event(event)


@dataclass(order=True)
class ScheduledEvent:
    due_tick: int
    seq: int
    label: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False, repr=False)
    owner: Optional[str] = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)


class TimerScheduler:
    """Cancellable callbacks due at a future tick.

    The tick driver calls run_due once per tick after physics and timers.
    """

    def __init__(self, clock: Callable[[], int]):
        self._clock = clock
        self._queue: List[ScheduledEvent] = []
        self._seq = count()

    def schedule(self, delay: int, callback: Callable[[], None], label: str,
                 owner: Optional[str] = None) -> ScheduledEvent:
        event = ScheduledEvent(
            due_tick=self._clock() + max(delay, 0),
            seq=next(self._seq),
            label=label,
            callback=callback,
            owner=owner,
        )
        heapq.heappush(self._queue, event)
        return event

    def cancel(self, event: ScheduledEvent) -> bool:
        if event.cancelled:
            return False
        event.cancelled = True
        return True

    def cancel_owner(self, owner: str) -> int:
        cancelled = 0
        for event in self._queue:
            if event.owner == owner and not event.cancelled:
                event.cancelled = True
                cancelled += 1
        return cancelled

    def run_due(self, tick: int) -> int:
        fired = 0
        while self._queue and self._queue[0].due_tick <= tick:
            event = heapq.heappop(self._queue)
            if event.cancelled:
                continue
            logger.debug(f"Firing scheduled event {event.label} at tick {tick}")
            event.callback()
            fired += 1
        return fired

    def pending(self) -> List[ScheduledEvent]:
        return sorted(e for e in self._queue if not e.cancelled)

    def clear(self):
        self._queue.clear()
