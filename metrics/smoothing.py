# metrics/smoothing.py
from collections import deque

import numpy as np

from vision.eyes import is_valid_ear

MIN_WINDOW = 2
MAX_WINDOW = 5


class EARSmoother:
    """
    Median filter over the last few averaged EAR samples
    Robust to single-frame spikes; oldest sample is evicted first.
    """

    def __init__(self, config=None):
        """
        Args:
            config: Configuration dictionary with smoothing parameters
        """
        self.config = config or {}
        smoothing_config = self.config.get('smoothing', {})
        self.window = self._clamp_window(smoothing_config.get('ear_window', MIN_WINDOW))
        self.buffer = deque(maxlen=self.window)
        self.last_value = None

    @staticmethod
    def _clamp_window(window):
        return max(MIN_WINDOW, min(MAX_WINDOW, int(window)))

    def update(self, ear_value):
        """
        Add a sample and return the current median

        Args:
            ear_value: Averaged EAR for this frame

        Returns:
            float: Median of the buffer, or None when the sample is unusable
                so the frame is skipped downstream
        """
        if not is_valid_ear(ear_value):
            return None
        self.buffer.append(float(ear_value))
        self.last_value = float(np.median(self.buffer))
        return self.last_value

    def reset(self):
        self.buffer.clear()
        self.last_value = None

    def update_config(self, new_config):
        if 'smoothing' in new_config:
            window = self._clamp_window(new_config['smoothing'].get('ear_window', self.window))
            if window != self.window:
                self.window = window
                self.buffer = deque(self.buffer, maxlen=window)
