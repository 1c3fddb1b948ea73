"""
Extract specific landmarks for tech neck analysis
"""
from typing import Optional, Sequence, Any


class LandmarkExtractor:
    """Extract key landmarks and neck geometry from a pose skeleton"""

    # MediaPipe pose landmark indices
    NOSE = 0
    LEFT_EAR = 7
    RIGHT_EAR = 8
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12

    NUM_LANDMARKS = 33

    REQUIRED = {
        'nose': NOSE,
        'left_ear': LEFT_EAR,
        'right_ear': RIGHT_EAR,
        'left_shoulder': LEFT_SHOULDER,
        'right_shoulder': RIGHT_SHOULDER,
    }

    @staticmethod
    def extract_key_points(landmarks: Optional[Sequence[Any]]) -> Optional[dict]:
        """Extract key landmarks, or None if the skeleton is incomplete"""
        if not landmarks or len(landmarks) < LandmarkExtractor.NUM_LANDMARKS:
            return None

        key_points = {}
        for name, idx in LandmarkExtractor.REQUIRED.items():
            point = landmarks[idx]
            if point is None:
                return None
            key_points[name] = point
        return key_points

    @staticmethod
    def calculate_neck_geometry(key_points: dict) -> dict:
        """Average ear/shoulder positions and derive forward offset and neck length"""
        avg_ear_x = (key_points['left_ear'].x + key_points['right_ear'].x) / 2
        avg_ear_y = (key_points['left_ear'].y + key_points['right_ear'].y) / 2
        avg_shoulder_x = (key_points['left_shoulder'].x + key_points['right_shoulder'].x) / 2
        avg_shoulder_y = (key_points['left_shoulder'].y + key_points['right_shoulder'].y) / 2

        return {
            'head_forward_distance': abs(avg_ear_x - avg_shoulder_x),
            'neck_length': abs(avg_ear_y - avg_shoulder_y),
        }

    @staticmethod
    def get_neck_metrics(landmarks) -> Optional[dict]:
        """Key points -> neck geometry in one step (None if undetectable)"""
        key_points = LandmarkExtractor.extract_key_points(landmarks)
        if not key_points:
            return None
        return LandmarkExtractor.calculate_neck_geometry(key_points)
