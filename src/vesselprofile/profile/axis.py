"""
Vertical axis and visible-side selection.
"""

from typing import NamedTuple

import numpy as np


class Axis(NamedTuple):
    """Vessel axis within the image."""
    top: int  # first foreground row
    bottom: int  # last foreground row
    centerline: int  # column of the estimated symmetry axis
    right_side: bool  # measure the right half (else the left)


def vertical_extent(mask):
    """
    First and last rows containing foreground, or None for an empty mask.
    """
    rows = np.flatnonzero(mask.any(axis=1))
    if rows.size == 0:
        return None
    return int(rows[0]), int(rows[-1])


def find_centerline(mask, top, bottom):
    """
    Median x of all foreground pixels between top and bottom.

    Handles and spouts shift a bounding-box midpoint but barely move the
    median.
    """
    _, xs = np.nonzero(mask[top:bottom + 1])
    if xs.size == 0:
        return 0
    xs = np.sort(xs)
    return int(xs[xs.size // 2])


def select_side(mask, top, bottom, centerline):
    """True when at least as many pixels lie right of the centerline as left."""
    _, xs = np.nonzero(mask[top:bottom + 1])
    left = int(np.count_nonzero(xs < centerline))
    right = int(np.count_nonzero(xs > centerline))
    return right >= left


def find_axis(mask):
    """Axis of the silhouette, or None when there is no foreground."""
    extent = vertical_extent(mask)
    if extent is None:
        return None
    top, bottom = extent
    centerline = find_centerline(mask, top, bottom)
    return Axis(top, bottom, centerline, select_side(mask, top, bottom, centerline))
