"""
Posture Classifier Module for NeckSense.

Converts one skeleton (33 MediaPipe pose landmarks) into a tech neck verdict
and a 0-100 posture score. Pure and deterministic: no temporal memory, no
smoothing, no I/O.

Computation:
    avg_ear    = mean(left_ear, right_ear)
    avg_shldr  = mean(left_shoulder, right_shoulder)
    head_forward_distance = |avg_ear.x - avg_shldr.x|
    neck_length           = |avg_ear.y - avg_shldr.y|
    forward_ratio         = head_forward_distance / neck_length

    has_tech_neck = forward_ratio > forward_ratio_threshold        (0.15)
    score = clamp(round((1 - forward_ratio / score_zero_ratio) * 100), 0, 100)   (0.3)

The two constants are independent. A skeleton with forward_ratio 0.2 is
flagged while still scoring 33.

Undetectable input (fewer than 33 landmarks, a missing nose/ear/shoulder, or
neck_length exactly 0) yields the sentinel ClassificationResult(False, 0).
The sentinel has the same shape as a real result; use
PostureClassifier.describe() when the caller needs to tell them apart.

Usage:
    from config.defaults import TECH_NECK_THRESHOLDS
    classifier = PostureClassifier(TECH_NECK_THRESHOLDS)
    result = classifier.classify(landmarks)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from config.defaults import SCORE_BANDS, TECH_NECK_THRESHOLDS
from core.landmark_extractor import LandmarkExtractor


@dataclass(frozen=True)
class ClassificationResult:
    """Tech neck verdict for one skeleton."""
    has_tech_neck: bool
    score: int

    def as_dict(self) -> Dict[str, Any]:
        return {"has_tech_neck": self.has_tech_neck, "score": self.score}

    @property
    def band(self) -> str:
        """Human label for the score (Excellent / Fair / Poor)."""
        for lower, label in SCORE_BANDS:
            if self.score >= lower:
                return label
        return SCORE_BANDS[-1][1]


UNDETECTED = ClassificationResult(has_tech_neck=False, score=0)


def _round_half_up(value: float) -> int:
    # x.5 rounds towards +inf, so a ratio of exactly 0.15 scores 50
    return int(math.floor(value + 0.5))


class PostureClassifier:
    """
    Tech neck classifier with configurable thresholds.

    Threshold keys:
        forward_ratio_threshold: ratio strictly above => has_tech_neck
        score_zero_ratio:        ratio at which the score reaches 0
    """

    def __init__(self, thresholds: Optional[Dict[str, float]] = None):
        self.thresholds = dict(TECH_NECK_THRESHOLDS)
        if thresholds:
            self.thresholds.update(thresholds)

    @property
    def forward_ratio_threshold(self) -> float:
        return float(self.thresholds["forward_ratio_threshold"])

    @property
    def score_zero_ratio(self) -> float:
        return float(self.thresholds["score_zero_ratio"])

    def classify(self, landmarks: Optional[Sequence[Any]]) -> ClassificationResult:
        details = self.describe(landmarks)
        if details["status"] != "ok":
            return UNDETECTED
        return ClassificationResult(
            has_tech_neck=details["has_tech_neck"],
            score=details["score"],
        )

    def describe(self, landmarks: Optional[Sequence[Any]]) -> Dict[str, Any]:
        """
        Full diagnostic breakdown of one classification.

        Returns a dict with "status" in {"ok", "insufficient_landmarks",
        "degenerate"} plus whatever intermediate values could be computed.
        """
        geometry = LandmarkExtractor.get_neck_metrics(landmarks)
        if geometry is None:
            return {"status": "insufficient_landmarks"}

        details: Dict[str, Any] = dict(geometry)
        neck_length = geometry["neck_length"]
        if neck_length == 0:
            details["status"] = "degenerate"
            return details

        forward_ratio = geometry["head_forward_distance"] / neck_length
        raw_score = _round_half_up((1 - forward_ratio / self.score_zero_ratio) * 100)

        details.update({
            "status": "ok",
            "forward_ratio": forward_ratio,
            "has_tech_neck": forward_ratio > self.forward_ratio_threshold,
            "score": max(0, min(100, raw_score)),
        })
        return details


_default_classifier = PostureClassifier()


def classify(landmarks: Optional[Sequence[Any]]) -> ClassificationResult:
    """Classify with the default thresholds."""
    return _default_classifier.classify(landmarks)
