# scheduler.py
import heapq
import itertools


class TimerHandle:
    """A scheduled callback; periodic when interval is set"""

    def __init__(self, scheduler, due, callback, interval=None):
        self._scheduler = scheduler
        self.due = due
        self.callback = callback
        self.interval = interval
        self.cancelled = False

    @property
    def periodic(self):
        return self.interval is not None

    def cancel(self):
        if not self.cancelled:
            self.cancelled = True
            self._scheduler._forget(self)


class Scheduler:
    """
    Cooperative timers driven by the frame loop
    Nothing runs on its own: run_pending(now) executes every callback whose
    due time has passed, in due-time order. Callbacks receive now.
    """

    def __init__(self):
        self._queue = []
        self._counter = itertools.count()
        self._handles = set()

    def __len__(self):
        return len(self._handles)

    def call_later(self, delay, callback, now):
        """
        Run callback once, delay seconds after now

        Returns:
            TimerHandle
        """
        return self._push(TimerHandle(self, now + max(0.0, delay), callback))

    def call_at(self, due, callback):
        return self._push(TimerHandle(self, due, callback))

    def call_every(self, interval, callback, now):
        """
        Run callback every interval seconds, first run one interval after now

        Returns:
            TimerHandle
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        return self._push(TimerHandle(self, now + interval, callback, interval))

    def _push(self, handle):
        self._handles.add(handle)
        heapq.heappush(self._queue, (handle.due, next(self._counter), handle))
        return handle

    def _forget(self, handle):
        self._handles.discard(handle)

    def next_due(self):
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)
        return self._queue[0][0] if self._queue else None

    def run_pending(self, now):
        """
        Run every callback due at or before now

        Args:
            now: Current timestamp

        Returns:
            int: Number of callbacks run
        """
        ran = 0
        while self._queue:
            due, _, handle = self._queue[0]
            if handle.cancelled:
                heapq.heappop(self._queue)
                continue
            if due > now:
                break
            heapq.heappop(self._queue)
            if handle.periodic:
                # skip missed periods, a late loop runs a periodic task once
                missed = int((now - due) // handle.interval)
                handle.due = due + (missed + 1) * handle.interval
                heapq.heappush(self._queue, (handle.due, next(self._counter), handle))
            else:
                self._handles.discard(handle)
            handle.callback(now)
            ran += 1
        return ran

    def cancel_all(self):
        for handle in list(self._handles):
            handle.cancel()
        self._queue.clear()
