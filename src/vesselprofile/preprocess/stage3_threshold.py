"""
Stage 3: Global threshold and background estimation.

Otsu's criterion picks the gray cut; the image border is sampled to guess
whether the backdrop is dark or light, which seeds the foreground polarity.
"""

from typing import NamedTuple

import numpy as np

from vesselprofile.config import MAX_THRESHOLD_BIAS


class BackgroundEstimate(NamedTuple):
    """Mean border intensity and whether it reads as a dark backdrop."""
    is_dark: bool
    mean: float


def intensity_histogram(gray):
    """256-bin histogram of floored intensities."""
    bins = np.clip(np.floor(gray), 0, 255).astype(np.int64)
    return np.bincount(bins.ravel(), minlength=256)


def otsu_threshold(gray):
    """
    Exact Otsu threshold over a 256-bin histogram.

    Returns the cut t in 0..255 maximizing wB * wF * (mB - mF)^2, where the
    background class is every bin <= t. Ties resolve to the lowest t; an
    image without any positive-variance split yields 0.
    """
    hist = intensity_histogram(gray).astype(np.float64)
    total = hist.sum()
    if total == 0:
        return 0

    levels = np.arange(256, dtype=np.float64)
    w_b = np.cumsum(hist)
    sum_b = np.cumsum(levels * hist)
    w_f = total - w_b
    valid = (w_b > 0) & (w_f > 0)

    with np.errstate(divide="ignore", invalid="ignore"):
        m_b = np.where(valid, sum_b / w_b, 0.0)
        m_f = np.where(valid, (sum_b[-1] - sum_b) / w_f, 0.0)
    between = np.where(valid, w_b * w_f * (m_b - m_f) ** 2, 0.0)

    best = int(np.argmax(between))
    if between[best] <= 0:
        return 0
    return best


def apply_bias(threshold, bias):
    """Shift a threshold by a bias clamped to +/-50, keeping it in [0, 255]."""
    bias = max(-MAX_THRESHOLD_BIAS, min(MAX_THRESHOLD_BIAS, bias))
    return max(0, min(255, threshold + bias))


def detect_background(gray):
    """
    Estimate backdrop brightness from the image border.

    Samples the top and bottom rows and the left and right columns; a mean
    below 128 means a dark background.
    """
    border = np.concatenate([gray[0, :], gray[-1, :], gray[:, 0], gray[:, -1]])
    mean = float(border.mean())
    return BackgroundEstimate(is_dark=mean < 128, mean=mean)
