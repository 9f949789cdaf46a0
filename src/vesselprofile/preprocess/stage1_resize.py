"""
Stage 1: Bound the raster to the processing budget.

Every later stage is O(w*h) or worse, so oversized photos are scaled down
before any pixel work happens. Invalid rasters and dimensions are reported
as None so the pipeline can return an empty result.
"""

import math
import numbers

import cv2
import numpy as np

from vesselprofile.config import LimitsConfig
from vesselprofile.tracer import get_tracer, trace


def fit_dimensions(width, height, limits=None):
    """
    Compute processing dimensions that respect the width and pixel budgets.

    Aspect ratio is preserved and both results are integers >= 1.
    Returns None when width or height is missing, non-numeric, non-finite
    or smaller than one pixel.
    """
    limits = limits or LimitsConfig()

    for value in (width, height):
        if value is None or isinstance(value, bool) or not isinstance(value, numbers.Real):
            return None
        if not math.isfinite(value) or value < 1:
            return None

    w = float(width)
    h = float(height)

    if w > limits.max_width:
        h = math.floor(h * limits.max_width / w)
        w = limits.max_width

    if w * h > limits.max_pixels:
        scale = math.sqrt(limits.max_pixels / (w * h))
        w = math.floor(w * scale)
        h = math.floor(h * scale)

    return max(1, int(math.floor(w))), max(1, int(math.floor(h)))


def as_raster(image):
    """
    Coerce an image array to an (h, w, c) uint8 raster with 3 or 4 channels.

    Returns None for anything that cannot be read as such a raster.
    """
    if not isinstance(image, np.ndarray):
        return None
    if image.ndim != 3 or image.shape[2] not in (3, 4) or image.size == 0:
        return None

    if image.dtype == np.uint8:
        return image
    if np.issubdtype(image.dtype, np.floating):
        cleaned = np.nan_to_num(image, nan=0.0, posinf=255.0, neginf=0.0)
        return np.clip(cleaned, 0, 255).astype(np.uint8)
    if np.issubdtype(image.dtype, np.integer) or image.dtype == np.bool_:
        return np.clip(image.astype(np.int64), 0, 255).astype(np.uint8)
    return None


@trace(label="stage1_resize")
def resize_raster(image, limits=None):
    """
    Scale a raster down to the processing budget.

    Returns the (possibly unchanged) uint8 raster, or None when the input is
    unusable or resampling fails.
    """
    tracer = get_tracer()

    raster = as_raster(image)
    if raster is None:
        tracer.event("Unusable raster input", level="WARN", value=image)
        return None

    src_h, src_w = raster.shape[:2]
    size = fit_dimensions(src_w, src_h, limits)
    if size is None:
        tracer.event("Unusable dimensions", level="WARN", width=src_w, height=src_h)
        return None

    w, h = size
    if (w, h) == (src_w, src_h):
        return raster

    try:
        resized = cv2.resize(raster, (w, h), interpolation=cv2.INTER_AREA)
    except cv2.error as e:
        tracer.event("Resize failed", level="WARN", error=str(e)[:100])
        return None

    tracer.event("Resized", source=f"{src_w}x{src_h}", target=f"{w}x{h}")
    return resized
