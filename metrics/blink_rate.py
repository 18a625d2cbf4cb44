# metrics/blink_rate.py
import time
from collections import deque


class BlinkRateTracker:
    """
    Rolling blink history for rate calculation
    - Sliding-window blinks per minute (current rate)
    - Session-average blinks per minute with a start-up guard
    - Session duration since the last reset
    """

    def __init__(self, config=None, start_time=None):
        """
        Initialize Blink Rate Tracker with configuration

        Args:
            config: Configuration dictionary with rate parameters
            start_time: Session start timestamp (optional)
        """
        self.config = config or {}
        rate_config = self.config.get('rate', {})

        self.window_seconds = rate_config.get('window_s', 60.0)
        self.average_guard = rate_config.get('average_guard_s', 60.0)

        self.session_start = time.time() if start_time is None else start_time
        self.blink_log = []          # every blink of the session
        self.recent_blinks = deque()  # blinks inside the sliding window
        self.total_blinks = 0

    def record(self, event):
        """
        Record a blink

        Args:
            event: BlinkEvent or a raw timestamp
        """
        timestamp = getattr(event, 'timestamp', event)
        if self.blink_log and timestamp < self.blink_log[-1]:
            timestamp = self.blink_log[-1]
        self.blink_log.append(timestamp)
        self.recent_blinks.append(timestamp)
        self.total_blinks += 1

    def prune(self, now=None):
        """
        Drop blinks that fell out of the sliding window

        Args:
            now: Current timestamp (optional)
        """
        if now is None:
            now = time.time()
        cutoff = now - self.window_seconds
        while self.recent_blinks and self.recent_blinks[0] <= cutoff:
            self.recent_blinks.popleft()

    def current_rate(self, now=None):
        """
        Blinks in the last window, i.e. blinks per minute for a 60 s window

        Args:
            now: Current timestamp (optional)

        Returns:
            int: Number of blinks inside (now - window, now]
        """
        if now is None:
            now = time.time()
        self.prune(now)
        return sum(1 for ts in self.recent_blinks if ts <= now)

    def elapsed(self, now=None):
        if now is None:
            now = time.time()
        return max(0.0, now - self.session_start)

    def average_rate(self, now=None):
        """
        Session-average blinks per minute

        Falls back to the current rate while the session is younger than
        the guard period, where total / minutes would be meaningless.

        Args:
            now: Current timestamp (optional)

        Returns:
            float: Blinks per minute
        """
        if now is None:
            now = time.time()
        elapsed = self.elapsed(now)
        if elapsed < self.average_guard or elapsed <= 0:
            return float(self.current_rate(now))
        return self.total_blinks / (elapsed / 60.0)

    def session_duration(self, now=None):
        """Session length formatted as M:SS"""
        elapsed = int(self.elapsed(now))
        minutes, seconds = divmod(elapsed, 60)
        return f"{minutes}:{seconds:02d}"

    def snapshot(self, now=None):
        if now is None:
            now = time.time()
        return {
            'current_rate': self.current_rate(now),
            'average_rate': self.average_rate(now),
            'session_duration': self.session_duration(now),
            'total_blinks': self.total_blinks,
            'elapsed_s': self.elapsed(now),
        }

    def reset(self, now=None):
        """Clear history and restart the session clock"""
        self.session_start = time.time() if now is None else now
        self.blink_log.clear()
        self.recent_blinks.clear()
        self.total_blinks = 0

    def update_config(self, new_config):
        if 'rate' in new_config:
            rate_config = new_config['rate']
            self.window_seconds = rate_config.get('window_s', self.window_seconds)
            self.average_guard = rate_config.get('average_guard_s', self.average_guard)
