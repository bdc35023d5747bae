"""Blur signal via Laplacian variance sharpness scoring."""

import cv2
import numpy as np


def compute_sharpness(frame: np.ndarray) -> float:
    """Return the Laplacian variance of a luma or BGR frame.

    Higher values indicate a sharper frame.  Motion-blurred or out-of-focus
    frames score near zero.
    """
    gray = frame if frame.ndim == 2 else cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())
