"""
Image loading for the vessel profile extractor.

Decodes photos from disk into RGBA rasters. Decoding is the job of the
caller, not of the pipeline, so failures here raise instead of degrading
to an empty profile.
"""

import os

import cv2
import numpy as np

from vesselprofile.tracer import get_tracer, trace


SUPPORTED_EXTENSIONS = [".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp", ".webp"]


@trace(label="load_image")
def load_image(path):
    """
    Load an image from disk as RGBA.

    Returns a tuple of (image, metadata) where:
    - image: RGBA uint8 numpy array (H, W, 4)
    - metadata: dict with width, height, channels, source_path

    Raises FileNotFoundError if path does not exist.
    Raises ValueError if image cannot be decoded.
    """
    tracer = get_tracer()

    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")

    # imdecode copes with non-ASCII paths where imread does not
    data = np.fromfile(path, dtype=np.uint8)
    img = cv2.imdecode(data, cv2.IMREAD_UNCHANGED) if data.size else None

    if img is None:
        raise ValueError(f"Failed to load image: {path}")

    channels = 1 if img.ndim == 2 else img.shape[2]
    rgba = to_rgba(img)

    height, width = rgba.shape[:2]
    tracer.event("Loaded image", width=width, height=height, channels=channels)

    metadata = {
        "width": width,
        "height": height,
        "channels": channels,
        "source_path": os.path.abspath(path),
    }

    return rgba, metadata


def to_rgba(img):
    """
    Convert an OpenCV-decoded image (gray, BGR or BGRA) to RGBA uint8.

    16-bit images are scaled down to 8 bits.
    """
    if img.dtype == np.uint16:
        img = (img // 257).astype(np.uint8)
    elif img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    raise ValueError(f"Unsupported channel count: {img.shape[2]}")


def validate_image_inputs(paths):
    """
    Validate that all input paths exist and look like supported images.

    Returns a list of error messages (empty if all valid).
    """
    errors = []

    for path in paths:
        if not os.path.exists(path):
            errors.append(f"File not found: {path}")
            continue

        ext = os.path.splitext(path)[1].lower()
        if ext not in SUPPORTED_EXTENSIONS:
            errors.append(f"Unsupported image format: {path}")

    return errors
