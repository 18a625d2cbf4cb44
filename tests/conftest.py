import pytest

from vision.eyes import LEFT_EAR_INDICES, RIGHT_EAR_INDICES, Landmark

FACE_MESH_SIZE = 478


def make_eye_points(ear, width=0.1, cx=0.4, cy=0.4):
    """Six canonical eye points whose EAR is exactly `ear`"""
    half_height = ear * width / 2.0
    return [
        Landmark(cx - width / 2.0, cy),
        Landmark(cx - width / 6.0, cy - half_height),
        Landmark(cx + width / 6.0, cy - half_height),
        Landmark(cx + width / 2.0, cy),
        Landmark(cx + width / 6.0, cy + half_height),
        Landmark(cx - width / 6.0, cy + half_height),
    ]


def make_face(ear, left_ear=None, right_ear=None):
    """A full face landmark list with both eyes at the given openness"""
    landmarks = [Landmark(0.5, 0.5) for _ in range(FACE_MESH_SIZE)]
    left = make_eye_points(ear if left_ear is None else left_ear, cx=0.35)
    right = make_eye_points(ear if right_ear is None else right_ear, cx=0.65)
    for idx, point in zip(LEFT_EAR_INDICES, left):
        landmarks[idx] = point
    for idx, point in zip(RIGHT_EAR_INDICES, right):
        landmarks[idx] = point
    return landmarks


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def blink_config():
    return {
        'blinks': {
            'close_threshold': 0.2,
            'reopen_buffer': 0.02,
            'min_interval_s': 0.2,
            'confirmation_delay_s': 0.0,
        }
    }
