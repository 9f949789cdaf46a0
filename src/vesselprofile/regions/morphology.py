"""
Binary morphology with a full 3x3 structuring element.

Border pixels (first/last row and column) are never modified, matching the
interior-only treatment of the blur stage.
"""

import cv2
import numpy as np

from vesselprofile.regions.labeling import keep_largest_component
from vesselprofile.tracer import get_tracer, trace


KERNEL_3X3 = np.ones((3, 3), dtype=np.uint8)


def _interior_only(op, mask):
    h, w = mask.shape
    out = mask.copy()
    if h < 3 or w < 3:
        return out
    result = op(mask.astype(np.uint8), KERNEL_3X3) > 0
    out[1:h - 1, 1:w - 1] = result[1:h - 1, 1:w - 1]
    return out


def dilate(mask):
    """A pixel becomes foreground if any of its 8 neighbours is foreground."""
    return _interior_only(cv2.dilate, mask)


def erode(mask):
    """A pixel becomes background if any of its 8 neighbours is background."""
    return _interior_only(cv2.erode, mask)


def close(mask):
    """Dilate then erode: fills small holes and gaps."""
    return erode(dilate(mask))


def open_(mask):
    """Erode then dilate: removes specks and thin protrusions."""
    return dilate(erode(mask))


@trace(label="morph_cleanup")
def morph_cleanup(mask, level):
    """
    Apply the cleanup level to a mask.

    Level 1 closes and reselects the largest component. Level 2 does the
    same, then opens, closes and reselects again. Level 0 is a no-op.
    """
    tracer = get_tracer()

    if level >= 1:
        mask = keep_largest_component(close(mask))
        tracer.event("Closed", foreground=int(np.count_nonzero(mask)))

    if level >= 2:
        mask = keep_largest_component(close(open_(mask)))
        tracer.event("Opened and closed", foreground=int(np.count_nonzero(mask)))

    return mask
