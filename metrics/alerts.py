# metrics/alerts.py
import logging
import time

from metrics.blinks import elapsed_since

logger = logging.getLogger(__name__)

DEFAULT_EFFECT_DURATIONS = {'pulse': 0.15, 'sustained': 1.0}


class AlertTrigger:
    """
    Decides when to show a corrective effect for a low blink rate
    - NORMAL: rate at or above target (or still inside start-up grace)
    - PENDING: rate below target, waiting for it to stay low long enough
    - ACTIVE: effect visible until its duration runs out
    After an effect ends the trigger falls back to PENDING, so a repeat
    needs another full sustained-below period.
    """

    STATE_NORMAL = 'NORMAL'
    STATE_PENDING = 'PENDING'
    STATE_ACTIVE = 'ACTIVE'

    def __init__(self, config=None):
        """
        Initialize Alert Trigger with configuration

        Args:
            config: Configuration dictionary with alert parameters
        """
        self.config = config or {}
        alerts_config = self.config.get('alerts', {})

        self.target_rate = alerts_config.get('target_rate', 15)
        self.sustained_below = alerts_config.get('sustained_below_s', 3.0)
        self.startup_grace = alerts_config.get('startup_grace_s', 10.0)
        self.effect_kind = alerts_config.get('effect_kind', 'pulse')
        self.effect_durations = dict(DEFAULT_EFFECT_DURATIONS)
        self.effect_durations.update(alerts_config.get('effect_durations', {}))

        self.state = self.STATE_NORMAL
        self.pending_since = None
        self.active_until = None
        self.alert_count = 0
        self._listeners = []

    @property
    def visible(self):
        return self.state == self.STATE_ACTIVE

    @property
    def effect_duration(self):
        return self.effect_durations.get(self.effect_kind, DEFAULT_EFFECT_DURATIONS['pulse'])

    @property
    def signal(self):
        """Presenter-facing output"""
        return {'visible': self.visible, 'effect_kind': self.effect_kind}

    def add_listener(self, callback):
        """Register a callable receiving the signal on every visibility change"""
        self._listeners.append(callback)

    def evaluate(self, rate, timestamp=None, session_elapsed=None):
        """
        Evaluate the blink rate on a periodic tick

        Args:
            rate: Blinks per minute to compare against the target
            timestamp: Current timestamp (optional)
            session_elapsed: Seconds since the session started

        Returns:
            dict: Alert state and presenter signal
        """
        if timestamp is None:
            timestamp = time.time()
        fired = False

        if session_elapsed is not None and session_elapsed < self.startup_grace:
            return self._result(rate, fired)

        self.poll(timestamp)

        if rate < self.target_rate:
            if self.state == self.STATE_NORMAL:
                self.state = self.STATE_PENDING
                self.pending_since = timestamp
                logger.debug("Blink rate %s below target %s, pending", rate, self.target_rate)
            elif self.state == self.STATE_PENDING:
                if elapsed_since(self.pending_since, timestamp) >= self.sustained_below:
                    self._activate(timestamp)
                    fired = True
        else:
            self._to_normal()

        return self._result(rate, fired)

    def poll(self, timestamp=None):
        """
        End an active effect whose duration has run out

        Returns:
            bool: True if the effect was hidden by this call
        """
        if timestamp is None:
            timestamp = time.time()
        if self.state != self.STATE_ACTIVE or self.active_until is None:
            return False
        if timestamp < self.active_until:
            return False
        self.state = self.STATE_PENDING
        self.pending_since = timestamp
        self.active_until = None
        self._notify()
        return True

    def _activate(self, timestamp):
        self.state = self.STATE_ACTIVE
        self.active_until = timestamp + self.effect_duration
        self.alert_count += 1
        logger.info("Low blink rate alert #%d (%s effect)", self.alert_count, self.effect_kind)
        self._notify()

    def _to_normal(self):
        was_visible = self.visible
        self.state = self.STATE_NORMAL
        self.pending_since = None
        self.active_until = None
        if was_visible:
            self._notify()

    def _notify(self):
        signal = self.signal
        for callback in self._listeners:
            callback(signal)

    def _result(self, rate, fired):
        return {
            'state': self.state,
            'visible': self.visible,
            'effect_kind': self.effect_kind,
            'rate': rate,
            'target_rate': self.target_rate,
            'pending_since': self.pending_since,
            'active_until': self.active_until,
            'fired': fired,
            'alert_count': self.alert_count,
        }

    def set_target_rate(self, target_rate):
        if target_rate < 0:
            raise ValueError(f"target rate must be non-negative, got {target_rate}")
        self.target_rate = target_rate

    def set_effect_kind(self, effect_kind):
        if effect_kind not in self.effect_durations:
            raise ValueError(f"unknown effect kind {effect_kind!r}")
        self.effect_kind = effect_kind

    def reset(self):
        """Back to NORMAL with the effect hidden"""
        was_visible = self.visible
        self.state = self.STATE_NORMAL
        self.pending_since = None
        self.active_until = None
        self.alert_count = 0
        if was_visible:
            self._notify()

    def update_config(self, new_config):
        """
        Update configuration parameters

        Args:
            new_config: New configuration dictionary
        """
        if 'alerts' in new_config:
            alerts_config = new_config['alerts']
            self.target_rate = alerts_config.get('target_rate', self.target_rate)
            self.sustained_below = alerts_config.get('sustained_below_s', self.sustained_below)
            self.startup_grace = alerts_config.get('startup_grace_s', self.startup_grace)
            self.effect_kind = alerts_config.get('effect_kind', self.effect_kind)
            self.effect_durations.update(alerts_config.get('effect_durations', {}))
