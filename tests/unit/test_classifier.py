"""Unit tests for facecheck/classifier.py."""

import itertools

import pytest

from facecheck.classifier import (
    BRIGHT_THRESHOLD,
    DARK_THRESHOLD,
    FrameQualityClassifier,
    classify,
)
from facecheck.results import DETECTION_FAILED, Faces, QualityVerdict
from facecheck.video.brightness import estimate

DETECTIONS = [DETECTION_FAILED, Faces(0), Faces(1), Faces(2), Faces(5)]
BRIGHTNESS = [0, 99, 100, 150, 220, 221, 255]


# ---------------------------------------------------------------------------
# classify: pure decision
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "detection,brightness", list(itertools.product(DETECTIONS, BRIGHTNESS))
)
def test_classify_is_total(detection, brightness):
    assert isinstance(classify(detection, brightness), QualityVerdict)


def test_face_count_dominates_brightness():
    assert classify(Faces(2), 50) == QualityVerdict.MULTIPLE_FACES


@pytest.mark.parametrize(
    "brightness,expected",
    [
        (99, QualityVerdict.TOO_DARK),
        (100, QualityVerdict.GOOD),
        (220, QualityVerdict.GOOD),
        (221, QualityVerdict.TOO_BRIGHT),
    ],
)
def test_brightness_boundaries(brightness, expected):
    assert classify(Faces(1), brightness) == expected


@pytest.mark.parametrize("brightness", BRIGHTNESS)
def test_detection_failure_equals_no_face(brightness):
    assert (
        classify(DETECTION_FAILED, brightness)
        == classify(Faces(0), brightness)
        == QualityVerdict.NO_FACE_DETECTED
    )


def test_thresholds_are_named_constants():
    assert DARK_THRESHOLD == 100
    assert BRIGHT_THRESHOLD == 220


def test_custom_thresholds():
    assert classify(Faces(1), 90, dark_threshold=80) == QualityVerdict.GOOD
    assert classify(Faces(1), 200, bright_threshold=180) == QualityVerdict.TOO_BRIGHT


def test_classify_is_deterministic():
    results = {classify(Faces(1), 150) for _ in range(100)}
    assert results == {QualityVerdict.GOOD}


def test_too_blurry_never_produced_without_sharpness():
    produced = {classify(d, b) for d, b in itertools.product(DETECTIONS, BRIGHTNESS)}
    assert QualityVerdict.TOO_BLURRY not in produced


def test_blur_checked_after_face_count_before_brightness():
    assert classify(Faces(1), 50, sharpness=10.0) == QualityVerdict.TOO_BLURRY
    assert classify(Faces(2), 150, sharpness=10.0) == QualityVerdict.MULTIPLE_FACES
    assert classify(Faces(0), 150, sharpness=10.0) == QualityVerdict.NO_FACE_DETECTED


def test_sharp_frame_falls_through_to_brightness():
    assert classify(Faces(1), 50, sharpness=500.0) == QualityVerdict.TOO_DARK
    assert classify(Faces(1), 150, sharpness=500.0) == QualityVerdict.GOOD


def test_blur_threshold_is_inclusive():
    assert classify(Faces(1), 150, sharpness=50.0) == QualityVerdict.TOO_BLURRY
    assert classify(Faces(1), 150, sharpness=50.1) == QualityVerdict.GOOD


# ---------------------------------------------------------------------------
# End-to-end scenarios with the brightness estimator
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "faces,mean,expected",
    [
        (1, 80, QualityVerdict.TOO_DARK),
        (0, 150, QualityVerdict.NO_FACE_DETECTED),
        (0, 0, QualityVerdict.NO_FACE_DETECTED),
        (3, 150, QualityVerdict.MULTIPLE_FACES),
        (1, 150, QualityVerdict.GOOD),
    ],
)
def test_scenarios(faces, mean, expected):
    buffer = bytes([mean] * 64)
    assert classify(Faces(faces), estimate(buffer)) == expected


# ---------------------------------------------------------------------------
# FrameQualityClassifier: debounce
# ---------------------------------------------------------------------------


def test_no_smoothing_matches_classify():
    classifier = FrameQualityClassifier(stable_frames=1)
    for detection, brightness in itertools.product(DETECTIONS, BRIGHTNESS):
        assert classifier.evaluate(detection, brightness) == classify(
            detection, brightness
        )


def test_first_verdict_emitted_immediately():
    classifier = FrameQualityClassifier(stable_frames=5)
    assert classifier.last_verdict is None
    assert classifier.evaluate(Faces(0), 150) == QualityVerdict.NO_FACE_DETECTED
    assert classifier.last_verdict == QualityVerdict.NO_FACE_DETECTED


def test_single_frame_flicker_is_suppressed():
    classifier = FrameQualityClassifier(stable_frames=3)
    classifier.evaluate(Faces(1), 150)
    assert classifier.evaluate(Faces(1), 50) == QualityVerdict.GOOD
    assert classifier.evaluate(Faces(1), 150) == QualityVerdict.GOOD
    assert classifier.evaluate(Faces(1), 50) == QualityVerdict.GOOD


def test_verdict_changes_after_stable_frames():
    classifier = FrameQualityClassifier(stable_frames=3)
    classifier.evaluate(Faces(1), 150)
    assert classifier.evaluate(Faces(2), 150) == QualityVerdict.GOOD
    assert classifier.evaluate(Faces(2), 150) == QualityVerdict.GOOD
    assert classifier.evaluate(Faces(2), 150) == QualityVerdict.MULTIPLE_FACES


def test_alternating_candidates_restart_count():
    classifier = FrameQualityClassifier(stable_frames=2)
    classifier.evaluate(Faces(1), 150)
    assert classifier.evaluate(Faces(1), 50) == QualityVerdict.GOOD
    assert classifier.evaluate(Faces(1), 250) == QualityVerdict.GOOD
    assert classifier.evaluate(Faces(1), 250) == QualityVerdict.TOO_BRIGHT


def test_reset_restores_stream_start():
    classifier = FrameQualityClassifier(stable_frames=3)
    classifier.evaluate(Faces(1), 150)
    classifier.evaluate(Faces(0), 150)
    classifier.reset()
    assert classifier.last_verdict is None
    assert classifier.evaluate(Faces(0), 150) == QualityVerdict.NO_FACE_DETECTED


def test_evaluate_uses_configured_thresholds():
    classifier = FrameQualityClassifier(dark_threshold=50, bright_threshold=60)
    assert classifier.evaluate(Faces(1), 55) == QualityVerdict.GOOD


def test_invalid_stable_frames_raises():
    with pytest.raises(ValueError):
        FrameQualityClassifier(stable_frames=0)
