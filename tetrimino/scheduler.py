# Tetrimino - A falling-block rules engine
# scheduler.py - Timer interface the game session calls into, plus two hosts

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional
import asyncio
import heapq
import itertools

from .exceptions import SchedulerError


class TimerKind(Enum):
    """Timer tags the session arms and cancels."""
    GRAVITY = "gravity"
    LOCK = "lock"
    CLEAR_COMMIT = "clear_commit"
    SOFT_DROP = "soft_drop"


TickHandler = Callable[[TimerKind], None]


class Scheduler(ABC):
    """
    Abstract scheduling interface.

    The session never waits or sleeps; it asks the scheduler to deliver a
    tagged tick later and the host calls the bound handler when it is due.
    Scheduling a tag that is already pending replaces the old timer.
    """

    def __init__(self):
        self._handler: Optional[TickHandler] = None

    def bind(self, handler: TickHandler):
        self._handler = handler

    def _check(self, delay: float):
        if self._handler is None:
            raise SchedulerError("Scheduler has no tick handler bound")
        if delay <= 0:
            raise SchedulerError(f"Timer delay must be positive, got {delay}")

    def _dispatch(self, tag: TimerKind):
        if self._handler is not None:
            self._handler(tag)

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on the scheduler's clock."""

    @abstractmethod
    def schedule_once(self, delay: float, tag: TimerKind):
        """Deliver tag once after delay seconds."""

    @abstractmethod
    def schedule_repeating(self, interval: float, tag: TimerKind):
        """Deliver tag every interval seconds until cancelled."""

    @abstractmethod
    def cancel(self, tag: TimerKind):
        """Cancel a pending timer. Unknown tags are ignored."""

    @abstractmethod
    def is_scheduled(self, tag: TimerKind) -> bool:
        pass

    @abstractmethod
    def interval_of(self, tag: TimerKind) -> Optional[float]:
        """Period of a repeating timer (or delay of a one-shot), None if not pending."""

    def cancel_all(self):
        for tag in TimerKind:
            self.cancel(tag)


class _Entry:
    __slots__ = ('due', 'seq', 'tag', 'interval', 'repeating', 'cancelled')

    def __init__(self, due, seq, tag, interval, repeating):
        self.due = due
        self.seq = seq
        self.tag = tag
        self.interval = interval
        self.repeating = repeating
        self.cancelled = False

    def __lt__(self, other):
        return (self.due, self.seq) < (other.due, other.seq)


class ManualScheduler(Scheduler):
    """
    Virtual-clock scheduler. Time only moves when advance() is called,
    which makes timing rules exactly reproducible in tests and headless hosts.
    """

    def __init__(self, start: float = 0.0):
        super().__init__()
        self._now = start
        self._heap: List[_Entry] = []
        self._active: Dict[TimerKind, _Entry] = {}
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def _push(self, delay: float, tag: TimerKind, repeating: bool):
        self._check(delay)
        self.cancel(tag)
        entry = _Entry(self._now + delay, next(self._counter), tag, delay, repeating)
        self._active[tag] = entry
        heapq.heappush(self._heap, entry)

    def schedule_once(self, delay: float, tag: TimerKind):
        self._push(delay, tag, repeating=False)

    def schedule_repeating(self, interval: float, tag: TimerKind):
        self._push(interval, tag, repeating=True)

    def cancel(self, tag: TimerKind):
        entry = self._active.pop(tag, None)
        if entry is not None:
            entry.cancelled = True

    def is_scheduled(self, tag: TimerKind) -> bool:
        return tag in self._active

    def interval_of(self, tag: TimerKind) -> Optional[float]:
        entry = self._active.get(tag)
        return entry.interval if entry is not None else None

    def next_due(self, tag: TimerKind) -> Optional[float]:
        entry = self._active.get(tag)
        return entry.due if entry is not None else None

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing every timer that falls due on the way.
        Returns the number of ticks delivered.
        """
        return self.advance_to(self._now + seconds)

    def advance_to(self, target: float) -> int:
        fired = 0
        while self._heap and self._heap[0].due <= target:
            entry = heapq.heappop(self._heap)
            if entry.cancelled:
                continue
            self._now = entry.due
            if entry.repeating:
                # Re-arm before dispatch so the handler may cancel it
                nxt = _Entry(entry.due + entry.interval, next(self._counter),
                             entry.tag, entry.interval, True)
                self._active[entry.tag] = nxt
                heapq.heappush(self._heap, nxt)
            else:
                del self._active[entry.tag]
            self._dispatch(entry.tag)
            fired += 1
        self._now = max(self._now, target)
        return fired


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by an asyncio event loop. Callbacks run on the loop
    thread, so ticks are delivered one at a time like any other loop callback.

    Without an explicit loop, the running loop is looked up on first use, so a
    GameSession built on this scheduler must be created inside a coroutine or
    callback; otherwise get_running_loop() raises RuntimeError.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        super().__init__()
        self._loop = loop
        self._handles: Dict[TimerKind, asyncio.TimerHandle] = {}
        self._intervals: Dict[TimerKind, float] = {}

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def schedule_once(self, delay: float, tag: TimerKind):
        self._check(delay)
        self.cancel(tag)
        self._intervals[tag] = delay
        self._handles[tag] = self.loop.call_later(delay, self._fire_once, tag)

    def schedule_repeating(self, interval: float, tag: TimerKind):
        self._check(interval)
        self.cancel(tag)
        self._intervals[tag] = interval
        due = self.loop.time() + interval
        self._handles[tag] = self.loop.call_at(due, self._fire_repeating, tag, due, interval)

    def _fire_once(self, tag: TimerKind):
        self._handles.pop(tag, None)
        self._intervals.pop(tag, None)
        self._dispatch(tag)

    def _fire_repeating(self, tag: TimerKind, due: float, interval: float):
        nxt = due + interval
        self._handles[tag] = self.loop.call_at(nxt, self._fire_repeating, tag, nxt, interval)
        self._dispatch(tag)

    def cancel(self, tag: TimerKind):
        handle = self._handles.pop(tag, None)
        self._intervals.pop(tag, None)
        if handle is not None:
            handle.cancel()

    def is_scheduled(self, tag: TimerKind) -> bool:
        return tag in self._handles

    def interval_of(self, tag: TimerKind) -> Optional[float]:
        return self._intervals.get(tag)
