"""
Per-row radius measurement and median smoothing.
"""

import numpy as np
from scipy.ndimage import median_filter


def extract_radii(mask, axis):
    """
    Radius of each row from axis.top to axis.bottom, top row first.

    The radius is the largest distance from the centerline to a foreground
    pixel on the measured side; the centerline column itself counts as 0.
    Rows with no such pixel get 0.
    """
    rows = mask[axis.top:axis.bottom + 1]
    cols = np.arange(mask.shape[1])
    c = axis.centerline

    if axis.right_side:
        on_side = rows & (cols >= c)
        distance = cols - c
    else:
        on_side = rows & (cols <= c)
        distance = c - cols

    return np.where(on_side, distance, 0).max(axis=1).astype(np.float64)


def median_smooth(values, half_window):
    """
    1-D median filter with a window of 2 * half_window + 1.

    Edges replicate the first and last value. A half-window of 0 returns a
    copy of the input.
    """
    values = np.asarray(values, dtype=np.float64)
    if half_window <= 0 or values.size == 0:
        return values.copy()
    return median_filter(values, size=2 * half_window + 1, mode="nearest")
