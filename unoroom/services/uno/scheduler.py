"""Generation-tagged timers for match clocks and deferred bot moves.

Every timer is keyed by ``(match_code, kind)``. Each schedule call stamps the
key with a fresh generation drawn from one process-wide counter; a callback
that wakes up holding any other generation is dropped instead of firing
against a later turn.
"""

import contextlib
import heapq
import itertools
import logging
import threading
from typing import Callable, Dict, Hashable, List, Tuple

TimerKey = Tuple[Hashable, str]

logger = logging.getLogger(__name__)


class TimerScheduler:
    def __init__(self, logger_=None):
        self.logger = logger_ or logger
        self._generations: Dict[TimerKey, int] = {}
        self._counter = itertools.count(1)
        self._gen_lock = threading.Lock()

    def schedule(self, key: TimerKey, delay: float, callback: Callable[[], None], repeat: bool = False, lock=None) -> int:
        """Arm ``callback`` after ``delay`` seconds, replacing any timer on ``key``.

        When ``lock`` is given it is held across the staleness check and the
        callback, so an owner that cancels under the same lock never sees an
        old firing slip through.
        """
        with self._gen_lock:
            generation = next(self._counter)
            self._generations[key] = generation
        self.logger.debug(f"[timer-set] key={key} gen={generation} delay={delay}s repeat={repeat}")
        self._spawn(key, generation, delay, callback, repeat, lock)
        return generation

    def cancel(self, key: TimerKey) -> None:
        with self._gen_lock:
            self._generations.pop(key, None)

    def cancel_match(self, match_code) -> None:
        with self._gen_lock:
            for key in [k for k in self._generations if k[0] == match_code]:
                del self._generations[key]

    def is_current(self, key: TimerKey, generation: int) -> bool:
        with self._gen_lock:
            return self._generations.get(key) == generation

    def active_keys(self) -> List[TimerKey]:
        with self._gen_lock:
            return list(self._generations)

    def _fire(self, key: TimerKey, generation: int, callback: Callable[[], None], lock=None) -> bool:
        """Run one firing; returns False when the timer should stop."""
        with (lock if lock is not None else contextlib.nullcontext()):
            if not self.is_current(key, generation):
                self.logger.debug(f"[timer-abort] key={key} gen={generation} stale")
                return False
            try:
                callback()
            except Exception:
                self.logger.exception(f"[timer-error] key={key} gen={generation}")
                return False
            return True

    def _spawn(self, key, generation, delay, callback, repeat, lock):
        raise NotImplementedError


class SocketIOScheduler(TimerScheduler):
    """Runs each timer as a Socket.IO background task (thread, eventlet or gevent)."""

    def __init__(self, socketio, logger_=None):
        super().__init__(logger_)
        self.socketio = socketio

    def _spawn(self, key, generation, delay, callback, repeat, lock):
        self.socketio.start_background_task(self._worker, key, generation, delay, callback, repeat, lock)

    def _worker(self, key, generation, delay, callback, repeat, lock=None):
        while True:
            self.socketio.sleep(delay)
            if not self._fire(key, generation, callback, lock):
                return
            if not repeat or not self.is_current(key, generation):
                return


class ManualScheduler(TimerScheduler):
    """Virtual clock: nothing fires until :meth:`advance` moves time forward."""

    def __init__(self, logger_=None):
        super().__init__(logger_)
        self.now = 0.0
        self._queue: List[tuple] = []
        self._seq = itertools.count()

    def _spawn(self, key, generation, delay, callback, repeat, lock):
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), key, generation, delay, callback, repeat, lock))

    def pending(self) -> int:
        return sum(1 for entry in self._queue if self.is_current(entry[2], entry[3]))

    def advance(self, seconds: float) -> None:
        """Fire everything due within the next ``seconds``, in due order."""
        self._run_until(self.now + seconds)

    def step(self) -> bool:
        """Jump to the next live timer and fire it. Returns False when idle."""
        while self._queue:
            due, _, key, generation = self._queue[0][:4]
            if self.is_current(key, generation):
                self._run_until(due)
                return True
            heapq.heappop(self._queue)
        return False

    def _run_until(self, target: float) -> None:
        while self._queue and self._queue[0][0] <= target:
            due, _, key, generation, delay, callback, repeat, lock = heapq.heappop(self._queue)
            self.now = due
            if self._fire(key, generation, callback, lock) and repeat and self.is_current(key, generation):
                heapq.heappush(self._queue, (due + delay, next(self._seq), key, generation, delay, callback, repeat, lock))
        self.now = target
