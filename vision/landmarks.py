# vision/landmarks.py
from collections import deque

from vision.eyes import Landmark, to_landmark


class LandmarkSmoother:
    """
    Per-landmark position smoothing
    Keeps a bounded ring buffer of recent positions for every tracked index
    and reports the mean position, reducing frame-to-frame jitter.
    """

    def __init__(self, config=None, indices=None):
        """
        Args:
            config: Configuration dictionary with smoothing parameters
            indices: Landmark indices to track
        """
        self.config = config or {}
        smoothing_config = self.config.get('smoothing', {})

        self.window = max(1, int(smoothing_config.get('position_window', 1)))
        self.indices = list(indices or [])
        self._history = {idx: deque(maxlen=self.window) for idx in self.indices}

    @property
    def enabled(self):
        return self.window > 1

    def smooth(self, landmarks):
        """
        Add the current frame and return smoothed positions

        Args:
            landmarks: Face landmarks for a single face

        Returns:
            dict: index -> Landmark for every tracked index present this frame
        """
        smoothed = {}
        for idx in self.indices:
            try:
                point = to_landmark(landmarks[idx])
            except (IndexError, KeyError, TypeError):
                point = None
            if point is None:
                continue

            history = self._history[idx]
            history.append(point)
            if not self.enabled:
                smoothed[idx] = point
                continue

            n = len(history)
            x = sum(p.x for p in history) / n
            y = sum(p.y for p in history) / n
            if all(p.z is not None for p in history):
                z = sum(p.z for p in history) / n
            else:
                z = None
            smoothed[idx] = Landmark(x, y, z)
        return smoothed

    def history_length(self, idx):
        return len(self._history.get(idx, ()))

    def reset(self):
        for history in self._history.values():
            history.clear()

