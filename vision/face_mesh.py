# vision/face_mesh.py
import logging

import cv2
import mediapipe as mp

logger = logging.getLogger(__name__)


class FaceLandmarkSource:
    """
    Supplies face landmarks per frame using MediaPipe Face Mesh
    At most one face is tracked; frames without a face yield None.
    """

    def __init__(self, config=None):
        """
        Initialize Face Mesh with configuration

        Args:
            config: Configuration dictionary
        """
        self.config = config or {}

        self.mp_face_mesh = mp.solutions.face_mesh
        self.face_mesh = self.mp_face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=True,
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5
        )

    def process_frame(self, frame):
        """
        Detect face landmarks in a BGR frame

        Args:
            frame: Input frame (BGR format)

        Returns:
            Landmark list of the first face, or None
        """
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mesh_results = self.face_mesh.process(rgb_frame)
        if not mesh_results.multi_face_landmarks:
            return None
        return mesh_results.multi_face_landmarks[0].landmark

    def draw_eye_landmarks(self, frame, landmarks, indices, color=(0, 255, 0)):
        """
        Draw the EAR points and eye outline on the frame

        Args:
            frame: Frame to draw on
            landmarks: Face landmarks
            indices: Index lists, one per eye
            color: BGR color
        """
        height, width = frame.shape[:2]
        for eye_indices in indices:
            points = []
            for idx in eye_indices:
                point = landmarks[idx]
                xy = (int(point.x * width), int(point.y * height))
                points.append(xy)
                cv2.circle(frame, xy, 2, color, -1)
            for start, end in zip(points, points[1:] + points[:1]):
                cv2.line(frame, start, end, color, 1)

    def cleanup(self):
        """Clean up MediaPipe resources"""
        if hasattr(self, 'face_mesh'):
            self.face_mesh.close()
