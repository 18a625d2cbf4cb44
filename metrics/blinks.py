# metrics/blinks.py
import logging
import time
from collections import namedtuple

from vision.eyes import is_valid_ear

logger = logging.getLogger(__name__)

BlinkEvent = namedtuple('BlinkEvent', ['timestamp', 'ear'])


def elapsed_since(earlier, now):
    """Seconds from earlier to now, clamped at zero if the clock regressed"""
    return max(0.0, now - earlier)


class BlinkDetector:
    """
    Detects blinks from the smoothed EAR signal using an FSM
    - Hysteresis: closing below close_threshold, reopening only above
      close_threshold + reopen_buffer
    - Debounce: minimum interval between emitted blinks
    - Optional confirmation delay: a closure only counts if the eye is
      still closed once the delay has passed
    """

    STATE_OPEN = 0
    STATE_CLOSED = 1

    def __init__(self, config=None):
        """
        Initialize Blink Detector with configuration

        Args:
            config: Configuration dictionary with blink parameters
        """
        self.config = config or {}
        blinks_config = self.config.get('blinks', {})

        self.close_threshold = blinks_config.get('close_threshold', 0.35)
        self.reopen_buffer = blinks_config.get('reopen_buffer', 0.05)
        self.min_interval = blinks_config.get('min_interval_s', 0.2)
        self.confirmation_delay = blinks_config.get('confirmation_delay_s', 0.0)

        self.current_state = self.STATE_OPEN
        self.last_blink_time = None
        self.last_ear = None
        self.pending_close_time = None
        self.pending_close_ear = None
        self.total_blinks = 0
        self.discarded_closures = 0
        self._listeners = []

    @property
    def reopen_threshold(self):
        return self.close_threshold + self.reopen_buffer

    @property
    def is_closed(self):
        return self.current_state == self.STATE_CLOSED

    @property
    def confirmation_due(self):
        """Time at which the pending closure is resolved, or None"""
        if self.pending_close_time is None:
            return None
        return self.pending_close_time + self.confirmation_delay

    def add_listener(self, callback):
        """Register a callable receiving every emitted BlinkEvent"""
        self._listeners.append(callback)

    def update(self, ear_value, timestamp=None):
        """
        Update with a new smoothed EAR value

        Args:
            ear_value: Smoothed Eye Aspect Ratio for this frame
            timestamp: Current timestamp (optional)

        Returns:
            dict: Blink detection results
        """
        if timestamp is None:
            timestamp = time.time()

        if not is_valid_ear(ear_value):
            return self._result(None, timestamp, skipped=True)

        self.last_ear = ear_value
        event = self._resolve_pending(timestamp)

        if self.current_state == self.STATE_OPEN:
            if ear_value < self.close_threshold and self._debounce_elapsed(timestamp):
                self.current_state = self.STATE_CLOSED
                if self.confirmation_delay > 0:
                    self.pending_close_time = timestamp
                    self.pending_close_ear = ear_value
                else:
                    event = self._emit(timestamp, ear_value)

        elif self.current_state == self.STATE_CLOSED:
            if ear_value >= self.reopen_threshold:
                self.current_state = self.STATE_OPEN
                if self.pending_close_time is not None:
                    self._discard(timestamp)

        return self._result(event, timestamp)

    def poll(self, timestamp=None):
        """
        Resolve a pending closure without a new frame

        Args:
            timestamp: Current timestamp (optional)

        Returns:
            BlinkEvent if the closure was confirmed, otherwise None
        """
        if timestamp is None:
            timestamp = time.time()
        return self._resolve_pending(timestamp)

    def _debounce_elapsed(self, timestamp):
        if self.last_blink_time is None:
            return True
        return elapsed_since(self.last_blink_time, timestamp) >= self.min_interval

    def _resolve_pending(self, timestamp):
        if self.pending_close_time is None:
            return None
        if elapsed_since(self.pending_close_time, timestamp) < self.confirmation_delay:
            return None

        still_closed = (self.current_state == self.STATE_CLOSED
                        and self.last_ear is not None
                        and self.last_ear < self.close_threshold)
        if not still_closed:
            self._discard(timestamp)
            return None

        close_time, close_ear = self.pending_close_time, self.pending_close_ear
        self.pending_close_time = None
        self.pending_close_ear = None
        return self._emit(close_time, close_ear)

    def _discard(self, timestamp):
        logger.debug("Discarding unconfirmed closure from %.3f at %.3f",
                     self.pending_close_time, timestamp)
        self.pending_close_time = None
        self.pending_close_ear = None
        self.discarded_closures += 1

    def _emit(self, timestamp, ear_value):
        event = BlinkEvent(timestamp, ear_value)
        self.last_blink_time = timestamp
        self.total_blinks += 1
        logger.debug("Blink detected at %.3f (EAR=%.3f)", timestamp, ear_value)
        for callback in self._listeners:
            callback(event)
        return event

    def _result(self, event, timestamp, skipped=False):
        if self.last_blink_time is None:
            time_since_last_blink = None
        else:
            time_since_last_blink = elapsed_since(self.last_blink_time, timestamp)
        return {
            'current_state': 'CLOSED' if self.is_closed else 'OPEN',
            'blink_detected': event is not None,
            'event': event,
            'skipped': skipped,
            'pending_confirmation': self.pending_close_time is not None,
            'time_since_last_blink': time_since_last_blink,
            'total_blinks_detected': self.total_blinks,
            'discarded_closures': self.discarded_closures,
            'close_threshold': self.close_threshold,
            'reopen_threshold': self.reopen_threshold,
        }

    def reset(self):
        """Reset the detector state"""
        self.current_state = self.STATE_OPEN
        self.last_blink_time = None
        self.last_ear = None
        self.pending_close_time = None
        self.pending_close_ear = None
        self.total_blinks = 0
        self.discarded_closures = 0

    def update_config(self, new_config):
        """
        Update configuration parameters

        Args:
            new_config: New configuration dictionary
        """
        if 'blinks' in new_config:
            blinks_config = new_config['blinks']
            self.close_threshold = blinks_config.get('close_threshold', self.close_threshold)
            self.reopen_buffer = blinks_config.get('reopen_buffer', self.reopen_buffer)
            self.min_interval = blinks_config.get('min_interval_s', self.min_interval)
            self.confirmation_delay = blinks_config.get('confirmation_delay_s', self.confirmation_delay)
