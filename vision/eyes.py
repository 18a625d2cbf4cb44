# vision/eyes.py
import logging
import math
from collections import namedtuple

import numpy as np

logger = logging.getLogger(__name__)

Landmark = namedtuple('Landmark', ['x', 'y', 'z'], defaults=[None])

# Canonical 6-point order: outer corner, upper outer, upper inner,
# inner corner, lower inner, lower outer
LEFT_EAR_INDICES = [33, 160, 158, 133, 153, 144]
RIGHT_EAR_INDICES = [362, 385, 387, 263, 373, 380]

# Returned whenever EAR cannot be measured; reads as "open"
OPEN_EAR_SENTINEL = 1.0
MIN_HORIZONTAL_DISTANCE = 1e-6


def to_landmark(point):
    """
    Coerce a MediaPipe landmark, a Landmark or an (x, y[, z]) sequence

    Returns:
        Landmark or None if the point is unusable
    """
    if point is None or isinstance(point, str):
        return None
    if isinstance(point, Landmark):
        return point
    if hasattr(point, 'x') and hasattr(point, 'y'):
        return Landmark(point.x, point.y, getattr(point, 'z', None))
    try:
        if len(point) == 2:
            return Landmark(point[0], point[1])
        if len(point) == 3:
            return Landmark(point[0], point[1], point[2])
    except TypeError:
        pass
    return None


def _as_array(points):
    use_z = all(p.z is not None for p in points)
    if use_z:
        return np.array([(p.x, p.y, p.z) for p in points], dtype=float)
    return np.array([(p.x, p.y) for p in points], dtype=float)


def eye_aspect_ratio(points):
    """
    Compute Eye Aspect Ratio for one eye from 6 ordered points

    EAR = (||p1 - p5|| + ||p2 - p4||) / (2 * ||p0 - p3||)

    Distances are 3-D when every point has a z coordinate and 2-D otherwise.
    A degenerate eye (missing point, non-finite coordinate, zero width)
    yields OPEN_EAR_SENTINEL instead of raising.

    Args:
        points: Six landmarks in canonical order

    Returns:
        float: Eye Aspect Ratio value
    """
    if points is None or len(points) != 6:
        return OPEN_EAR_SENTINEL
    landmarks = [to_landmark(p) for p in points]
    if any(p is None for p in landmarks):
        return OPEN_EAR_SENTINEL

    try:
        pts = _as_array(landmarks)
    except (TypeError, ValueError):
        return OPEN_EAR_SENTINEL
    if not np.all(np.isfinite(pts)):
        return OPEN_EAR_SENTINEL

    vertical_a = np.linalg.norm(pts[1] - pts[5])
    vertical_b = np.linalg.norm(pts[2] - pts[4])
    horizontal = np.linalg.norm(pts[0] - pts[3])

    if horizontal < MIN_HORIZONTAL_DISTANCE:
        return OPEN_EAR_SENTINEL
    return float((vertical_a + vertical_b) / (2.0 * horizontal))


def extract_eye_points(landmarks, indices):
    """
    Pull the six points of one eye out of a full face landmark list

    Args:
        landmarks: Indexable face landmarks (list or mapping)
        indices: Six landmark indices in canonical order

    Returns:
        list of Landmark, or None when any point is missing
    """
    if landmarks is None:
        return None
    points = []
    for idx in indices:
        try:
            point = to_landmark(landmarks[idx])
        except (IndexError, KeyError, TypeError):
            return None
        if point is None:
            return None
        points.append(point)
    return points


def average_ear(left_ear, right_ear):
    return (left_ear + right_ear) / 2.0


class EyeGeometry:
    """
    Eye openness measurement for both eyes of one face
    - Selects the 6 EAR points per eye from the face landmarks
    - Calculates per-eye and averaged Eye Aspect Ratio
    """

    def __init__(self, config=None):
        """
        Initialize eye geometry with configuration

        Args:
            config: Configuration dictionary with eye parameters
        """
        self.config = config or {}
        eyes_config = self.config.get('eyes', {})

        self.left_indices = list(eyes_config.get('left_indices', LEFT_EAR_INDICES))
        self.right_indices = list(eyes_config.get('right_indices', RIGHT_EAR_INDICES))

    @property
    def tracked_indices(self):
        return self.left_indices + self.right_indices

    def measure(self, landmarks):
        """
        Measure both eyes in one frame

        Args:
            landmarks: Face landmarks for a single face

        Returns:
            dict with left_ear, right_ear and avg_ear, or None if the frame
            lacks usable eye points
        """
        left_points = extract_eye_points(landmarks, self.left_indices)
        right_points = extract_eye_points(landmarks, self.right_indices)
        if left_points is None or right_points is None:
            logger.debug("Missing eye landmarks, skipping frame")
            return None

        left_ear = eye_aspect_ratio(left_points)
        right_ear = eye_aspect_ratio(right_points)
        return {
            'left_ear': left_ear,
            'right_ear': right_ear,
            'avg_ear': average_ear(left_ear, right_ear),
        }

    def update_config(self, new_config):
        if 'eyes' in new_config:
            eyes_config = new_config['eyes']
            self.left_indices = list(eyes_config.get('left_indices', self.left_indices))
            self.right_indices = list(eyes_config.get('right_indices', self.right_indices))


def is_valid_ear(value):
    """True when value is a finite number usable by the detector"""
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False
