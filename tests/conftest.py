"""
Shared pytest fixtures for the facecheck test suite.

- override_settings: safe environment for Settings() (no real camera)
- fake_detector: stands in for the MediaPipe-backed FaceDetector
"""

from unittest.mock import MagicMock

import pytest

from facecheck.results import Faces


# ---------------------------------------------------------------------------
# Basic settings fixture: overrides env vars for tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def override_settings(monkeypatch):
    """Keep tests off the real camera and clear the cached Settings."""
    monkeypatch.setenv("CAMERA_ENABLED", "false")
    # Clear lru_cache so each test gets fresh Settings from monkeypatched env
    from facecheck.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Detector double
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_detector():
    """A FaceDetector double reporting one face unless told otherwise."""
    detector = MagicMock()
    detector.detect.return_value = Faces(count=1)
    return detector
