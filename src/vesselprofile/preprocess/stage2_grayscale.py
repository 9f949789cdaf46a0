"""
Stage 2: Grayscale conversion, contrast stretch and box blur.

All outputs are float64 (h, w) arrays with intensities in [0, 255].
"""

import cv2
import numpy as np

from vesselprofile.tracer import get_tracer, trace


# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

BLUR_KERNELS = {1: 3, 2: 5}


def to_grayscale(raster):
    """Luma-weighted intensity of an RGB(A) raster; alpha is ignored."""
    rgb = raster[..., :3].astype(np.float64)
    return np.ascontiguousarray(rgb @ LUMA_WEIGHTS)


def contrast_stretch(gray):
    """
    Linearly remap [min, max] to [0, 255].

    A flat image keeps a denominator of 1, so it maps to all zeros.
    """
    lo = float(gray.min())
    hi = float(gray.max())
    span = (hi - lo) or 1.0
    return np.clip((gray - lo) / span * 255.0, 0.0, 255.0)


def box_blur(gray, level):
    """
    Box-average the interior with a 3x3 (level 1) or 5x5 (level 2) window.

    Border rows and columns within the kernel radius keep their original
    values. Any other level returns the input unchanged.
    """
    size = BLUR_KERNELS.get(level)
    if size is None:
        return gray

    r = size // 2
    h, w = gray.shape
    out = gray.copy()
    if h <= 2 * r or w <= 2 * r:
        return out

    blurred = cv2.blur(gray, (size, size), borderType=cv2.BORDER_REPLICATE)
    out[r:h - r, r:w - r] = blurred[r:h - r, r:w - r]
    return out


@trace(label="stage2_grayscale")
def prepare_gray(raster, options, debug_writer=None):
    """
    Convert a raster into the intensity image used for thresholding.

    Applies the optional contrast stretch and then the optional blur.
    """
    tracer = get_tracer()

    gray = to_grayscale(raster)

    if options.contrast_stretch:
        gray = contrast_stretch(gray)
        tracer.event("Contrast stretched")

    if options.blur in BLUR_KERNELS:
        gray = box_blur(gray, options.blur)
        size = BLUR_KERNELS[options.blur]
        tracer.event("Box blur", kernel=size)

    if debug_writer:
        debug_writer.save_image(gray, "stage2", "01_gray.png")

    return gray
