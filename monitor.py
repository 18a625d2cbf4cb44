# monitor.py - Blink monitoring session
import logging
import time

from config import get_default_config, merge_config, validate_config
from metrics.alerts import AlertTrigger
from metrics.blink_rate import BlinkRateTracker
from metrics.blinks import BlinkDetector
from metrics.smoothing import EARSmoother
from scheduler import Scheduler
from vision.eyes import EyeGeometry
from vision.landmarks import LandmarkSmoother

logger = logging.getLogger(__name__)


class BlinkMonitor:
    """
    One monitoring session: landmarks in, blink rate and alert signal out
    Owns every stateful component plus the timers that prune the blink
    history, check the alert condition, confirm provisional closures and
    end active effects. All timers are cancelled together on stop/reset.
    """

    def __init__(self, config=None, clock=time.time, event_logger=None):
        """
        Initialize the session with configuration

        Args:
            config: Configuration dictionary (merged over defaults)
            clock: Callable returning the current timestamp in seconds
            event_logger: Optional DataLogger for blink and alert events
        """
        self.config = validate_config(merge_config(get_default_config(), config))
        self.clock = clock
        self.event_logger = event_logger

        self.geometry = EyeGeometry(self.config)
        self.position_smoother = LandmarkSmoother(self.config, self.geometry.tracked_indices)
        self.ear_smoother = EARSmoother(self.config)
        self.detector = BlinkDetector(self.config)
        self.rates = BlinkRateTracker(self.config, start_time=clock())
        self.alerts = AlertTrigger(self.config)
        self.scheduler = Scheduler()

        self._read_intervals(self.config)

        self.frame_count = 0
        self.skipped_frames = 0
        self.running = False
        self.last_alert_result = None
        self.last_now = None
        self._processing = False
        self._periodic_handles = []
        self._confirmation_handle = None
        self._revert_handle = None

        self.detector.add_listener(self._on_blink)
        self.alerts.add_listener(self._on_alert_signal)

    def _read_intervals(self, config):
        self.prune_interval = config['rate'].get('prune_interval_s', 1.0)
        self.check_interval = config['alerts'].get('check_interval_s', 10.0)
        self.rate_source = config['alerts'].get('rate_source', 'current')

    # -- lifecycle ---------------------------------------------------------

    def start(self, now=None):
        """Begin a fresh session and schedule the periodic timers"""
        if now is None:
            now = self.clock()
        if self.running:
            self.stop()
        self.last_now = now
        self._reset_components(now)
        self._schedule_periodic(now)
        self.running = True
        logger.info("Blink monitoring started")

    def stop(self):
        """Cancel every timer owned by the session"""
        self.scheduler.cancel_all()
        self._periodic_handles = []
        self._confirmation_handle = None
        self._revert_handle = None
        self.running = False

    def reset(self, now=None):
        """Stop, clear blink history and alert state together, then restart"""
        if now is None:
            now = self.clock()
        self.stop()
        self.start(now)
        if self.event_logger is not None:
            self.event_logger.log_event("Session Reset", "", now)
        logger.info("Session reset")

    def _reset_components(self, now):
        self.detector.reset()
        self.ear_smoother.reset()
        self.position_smoother.reset()
        self.rates.reset(now)
        self.alerts.reset()
        self.frame_count = 0
        self.skipped_frames = 0
        self.last_alert_result = None

    def _schedule_periodic(self, now):
        self._periodic_handles = [
            self.scheduler.call_every(self.prune_interval, self.rates.prune, now),
            self.scheduler.call_every(self.check_interval, self.check_alert, now),
        ]

    # -- frame path --------------------------------------------------------

    def process_frame(self, landmarks, timestamp=None):
        """
        Process one frame of face landmarks

        Args:
            landmarks: Landmarks of a single face, or None if no face
            timestamp: Frame timestamp (optional)

        Returns:
            dict: Frame results, or None if another frame is still in flight
        """
        if self._processing:
            logger.debug("Frame dropped, previous frame still processing")
            return None
        self._processing = True
        try:
            now = self.clock() if timestamp is None else timestamp
            self.last_now = now
            if not self.running:
                self.start(now)
            self.frame_count += 1

            eye_data = self._measure(landmarks)
            blink_result = None
            if eye_data is None:
                self.skipped_frames += 1
            else:
                eye_data['smoothed_ear'] = self.ear_smoother.update(eye_data['avg_ear'])
                blink_result = self.detector.update(eye_data['smoothed_ear'], now)
                self._sync_confirmation()

            # blinks recorded above are visible to timers due now
            self.scheduler.run_pending(now)

            return {
                'eyes': eye_data if eye_data is not None else {'eyes_detected': False},
                'blinks': blink_result,
                'rates': self.rates.snapshot(now),
                'alert': self.alert_status(),
                'timestamp': now,
                'frame_count': self.frame_count,
                'skipped': eye_data is None,
            }
        finally:
            self._processing = False

    def _measure(self, landmarks):
        if landmarks is None or len(landmarks) == 0:
            return None
        if self.position_smoother.enabled:
            landmarks = self.position_smoother.smooth(landmarks)
        eye_data = self.geometry.measure(landmarks)
        if eye_data is not None:
            eye_data['eyes_detected'] = True
        return eye_data

    def tick(self, now=None):
        """Run due timers without a frame"""
        if self._processing:
            return 0
        if now is None:
            now = self.clock()
        self.last_now = now
        return self.scheduler.run_pending(now)

    # -- timers ------------------------------------------------------------

    def _sync_confirmation(self):
        due = self.detector.confirmation_due
        handle = self._confirmation_handle
        if due is None:
            if handle is not None:
                handle.cancel()
                self._confirmation_handle = None
        elif handle is None or handle.cancelled or handle.due != due:
            if handle is not None:
                handle.cancel()
            self._confirmation_handle = self.scheduler.call_at(due, self._confirm)

    def _confirm(self, now):
        self._confirmation_handle = None
        self.detector.poll(now)

    def _revert(self, now):
        self._revert_handle = None
        self.alerts.poll(now)

    def check_alert(self, now=None):
        """
        Evaluate the alert trigger against the configured blink rate

        Returns:
            dict: Alert evaluation result
        """
        if now is None:
            now = self.clock()
        if self.rate_source == 'average':
            rate = self.rates.average_rate(now)
        else:
            rate = self.rates.current_rate(now)
        self.last_alert_result = self.alerts.evaluate(rate, now, self.rates.elapsed(now))
        return self.last_alert_result

    # -- listeners ---------------------------------------------------------

    def _on_blink(self, event):
        self.rates.record(event)
        if self.event_logger is not None:
            self.event_logger.log_event("Blink", f"EAR={event.ear:.3f}", event.timestamp)

    def _on_alert_signal(self, signal):
        if self._revert_handle is not None:
            self._revert_handle.cancel()
            self._revert_handle = None
        if signal['visible']:
            self._revert_handle = self.scheduler.call_at(self.alerts.active_until, self._revert)
            event_type = "Alert Shown"
        else:
            event_type = "Alert Hidden"
        if self.event_logger is not None:
            self.event_logger.log_event(event_type, f"Effect={signal['effect_kind']}")

    # -- reporting and tuning ----------------------------------------------

    def alert_status(self):
        status = self.alerts.signal
        status['state'] = self.alerts.state
        status['target_rate'] = self.alerts.target_rate
        return status

    def stats(self, now=None):
        """Display snapshot: current/average rate, session duration, totals"""
        if now is None:
            now = self.clock()
        snapshot = self.rates.snapshot(now)
        snapshot['alert'] = self.alert_status()
        return snapshot

    def set_target_rate(self, target_rate):
        self.alerts.set_target_rate(target_rate)

    def set_effect_kind(self, effect_kind):
        self.alerts.set_effect_kind(effect_kind)

    def update_config(self, new_config, now=None):
        """
        Update configuration parameters of every component

        Args:
            new_config: New configuration dictionary (may be partial)
            now: Time the periodic timers restart from (defaults to the
                last frame or tick time)
        """
        self.config = validate_config(merge_config(self.config, new_config))
        for component in (self.geometry, self.ear_smoother, self.detector,
                          self.rates, self.alerts):
            component.update_config(new_config)
        self.position_smoother = LandmarkSmoother(self.config, self.geometry.tracked_indices)
        self._read_intervals(self.config)
        if self.running:
            for handle in self._periodic_handles:
                handle.cancel()
            if now is None:
                now = self.last_now if self.last_now is not None else self.clock()
            self._schedule_periodic(now)
