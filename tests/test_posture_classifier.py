from types import SimpleNamespace

import pytest

from core.capabilities import Landmark
from core.posture_classifier import UNDETECTED, ClassificationResult, PostureClassifier, classify

from conftest import make_skeleton


def skeleton_with_offset(distance):
    """neck_length 1.0 and head_forward_distance == distance"""
    return make_skeleton(ear_x=distance, ear_y=0.0, shoulder_x=0.0, shoulder_y=1.0)


def test_classify_is_deterministic():
    skeleton = skeleton_with_offset(0.12)
    results = {classify(skeleton) for _ in range(5)}
    assert len(results) == 1


@pytest.mark.parametrize("landmarks", [None, [], make_skeleton(count=32)])
def test_short_or_missing_skeleton_is_undetected(landmarks):
    assert classify(landmarks) == ClassificationResult(has_tech_neck=False, score=0)


@pytest.mark.parametrize("index", [0, 7, 8, 11, 12])
def test_missing_required_landmark_is_undetected(index):
    skeleton = skeleton_with_offset(0.0)
    skeleton[index] = None
    assert classify(skeleton) == UNDETECTED


def test_unused_landmarks_may_be_missing():
    skeleton = skeleton_with_offset(0.0)
    skeleton[20] = None
    assert classify(skeleton) == ClassificationResult(False, 100)


@pytest.mark.parametrize("ear_x, shoulder_x", [(0.0, 0.0), (0.9, 0.1), (0.2, 0.7)])
def test_zero_neck_length_is_undetected(ear_x, shoulder_x):
    skeleton = make_skeleton(ear_x=ear_x, ear_y=0.4, shoulder_x=shoulder_x, shoulder_y=0.4)
    assert classify(skeleton) == UNDETECTED


def test_threshold_is_strict():
    assert classify(skeleton_with_offset(0.15)).has_tech_neck is False
    assert classify(skeleton_with_offset(0.1501)).has_tech_neck is True


@pytest.mark.parametrize("distance, expected", [(0.0, 100), (0.15, 50), (0.3, 0), (0.9, 0)])
def test_score_examples(distance, expected):
    assert classify(skeleton_with_offset(distance)).score == expected


def test_flagged_skeleton_can_still_score_above_zero():
    result = classify(skeleton_with_offset(0.2))
    assert result == ClassificationResult(has_tech_neck=True, score=33)


def test_score_is_non_increasing_with_forward_distance():
    scores = [classify(skeleton_with_offset(i / 100)).score for i in range(0, 50)]
    assert scores == sorted(scores, reverse=True)
    assert scores[0] == 100
    assert scores[-1] == 0


def test_uses_average_of_both_sides():
    skeleton = skeleton_with_offset(0.0)
    skeleton[7] = Landmark(x=0.1, y=0.0)
    skeleton[8] = Landmark(x=0.3, y=0.0)  # avg ear x 0.2
    assert classify(skeleton) == classify(skeleton_with_offset(0.2))


def test_direction_of_offset_does_not_matter():
    behind = make_skeleton(ear_x=0.0, ear_y=0.0, shoulder_x=0.2, shoulder_y=1.0)
    assert classify(behind) == classify(skeleton_with_offset(0.2))


def test_accepts_mediapipe_style_landmarks():
    skeleton = [SimpleNamespace(x=lm.x, y=lm.y, z=0.0) for lm in skeleton_with_offset(0.05)]
    assert classify(skeleton) == ClassificationResult(False, 83)


def test_describe_reports_status():
    classifier = PostureClassifier()
    assert classifier.describe(make_skeleton(count=10)) == {"status": "insufficient_landmarks"}

    flat = classifier.describe(make_skeleton(ear_y=0.5, shoulder_y=0.5))
    assert flat["status"] == "degenerate"
    assert flat["neck_length"] == 0

    details = classifier.describe(skeleton_with_offset(0.15))
    assert details["status"] == "ok"
    assert details["forward_ratio"] == pytest.approx(0.15)
    assert details["score"] == 50


def test_custom_thresholds():
    classifier = PostureClassifier({"forward_ratio_threshold": 0.05, "score_zero_ratio": 0.6})
    result = classifier.classify(skeleton_with_offset(0.15))
    assert result == ClassificationResult(has_tech_neck=True, score=75)


@pytest.mark.parametrize("score, band", [(100, "Excellent"), (80, "Excellent"), (50, "Fair"), (33, "Poor"), (0, "Poor")])
def test_score_band(score, band):
    assert ClassificationResult(False, score).band == band
