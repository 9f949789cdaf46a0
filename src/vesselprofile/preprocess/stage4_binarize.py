"""
Stage 4: Foreground mask with adaptive polarity.

A single global threshold fails on uneven lighting or near-uniform
backdrops, so when the polarity is AUTO the mask goes through a bounded
fallback chain (border polarity, flipped polarity, shifted threshold).
At most three binarization passes are made.
"""

from typing import NamedTuple

import numpy as np

from vesselprofile.config import LimitsConfig
from vesselprofile.models import Polarity
from vesselprofile.preprocess.stage3_threshold import apply_bias, detect_background, otsu_threshold
from vesselprofile.tracer import get_tracer, trace


class BinarizeOutcome(NamedTuple):
    """Mask chosen by the polarity chain and how it was decided."""
    mask: np.ndarray
    threshold: float
    dark_foreground: bool
    tier: str  # forced, border, flipped, shifted or unresolved
    fraction: float


def binarize(gray, threshold, dark_foreground):
    """Foreground is intensity <= t for dark subjects, >= t for light ones."""
    if dark_foreground:
        return gray <= threshold
    return gray >= threshold


def foreground_fraction(mask):
    if mask.size == 0:
        return 0.0
    return float(np.count_nonzero(mask)) / mask.size


def is_degenerate(fraction, limits):
    """True when a mask is near-empty or near-full."""
    return fraction < limits.min_fraction or fraction > limits.max_fraction


def resolve_polarity(polarity, background):
    """
    Initial dark_foreground decision for a polarity.

    A dark backdrop implies a light subject and vice versa.
    """
    if polarity == Polarity.DARK:
        return True
    if polarity == Polarity.LIGHT:
        return False
    return not background.is_dark


def shifted_threshold(threshold, background, limits):
    """Threshold moved toward the backdrop for the last fallback tier."""
    if background.is_dark:
        return max(0, min(255, threshold - limits.fallback_shift))
    return max(0, min(255, threshold + limits.fallback_shift))


def binarize_adaptive(gray, threshold, polarity, background, limits=None):
    """
    Binarize, correcting polarity when the result is degenerate.

    Forced polarities are used as-is. For AUTO:
    1. binarize with the border-implied polarity;
    2. if degenerate, flip polarity;
    3. if still degenerate, try the shifted threshold with the
       background-implied polarity and adopt it only if it is not degenerate.
    """
    limits = limits or LimitsConfig()
    dark_foreground = resolve_polarity(polarity, background)
    mask = binarize(gray, threshold, dark_foreground)
    fraction = foreground_fraction(mask)

    if polarity != Polarity.AUTO:
        return BinarizeOutcome(mask, threshold, dark_foreground, "forced", fraction)

    if not is_degenerate(fraction, limits):
        return BinarizeOutcome(mask, threshold, dark_foreground, "border", fraction)

    dark_foreground = not dark_foreground
    mask = binarize(gray, threshold, dark_foreground)
    fraction = foreground_fraction(mask)
    if not is_degenerate(fraction, limits):
        return BinarizeOutcome(mask, threshold, dark_foreground, "flipped", fraction)

    alt_threshold = shifted_threshold(threshold, background, limits)
    alt_dark = not background.is_dark
    alt_mask = binarize(gray, alt_threshold, alt_dark)
    alt_fraction = foreground_fraction(alt_mask)
    if not is_degenerate(alt_fraction, limits):
        return BinarizeOutcome(alt_mask, alt_threshold, alt_dark, "shifted", alt_fraction)

    return BinarizeOutcome(mask, threshold, dark_foreground, "unresolved", fraction)


@trace(label="stage4_binarize")
def binarize_image(gray, options, limits=None, debug_writer=None):
    """
    Threshold a gray image into a foreground mask.

    Combines Otsu, the clamped threshold bias, the border background
    heuristic and the adaptive polarity chain.
    """
    tracer = get_tracer()
    limits = limits or LimitsConfig()

    otsu = otsu_threshold(gray)
    threshold = apply_bias(otsu, options.threshold_bias)
    background = detect_background(gray)
    tracer.event(
        "Threshold",
        otsu=otsu,
        threshold=threshold,
        background_mean=background.mean,
        dark_background=background.is_dark,
    )

    outcome = binarize_adaptive(gray, threshold, options.polarity, background, limits)
    tracer.event(
        "Polarity",
        tier=outcome.tier,
        dark_foreground=outcome.dark_foreground,
        fraction=outcome.fraction,
    )

    if debug_writer:
        debug_writer.save_image(outcome.mask, "stage4", "01_mask.png")
        debug_writer.save_json({
            "otsu_threshold": otsu,
            "threshold": outcome.threshold,
            "background_mean": round(background.mean, 2),
            "dark_background": background.is_dark,
            "dark_foreground": outcome.dark_foreground,
            "tier": outcome.tier,
            "foreground_fraction": round(outcome.fraction, 4),
        }, "stage4", "metrics.json")

    return outcome
