"""
Normalization of per-row radii and resampling to a fixed point count.
"""

import numpy as np

from vesselprofile.models import ProfilePoint


def normalize_rows(radii, max_radius):
    """
    Map per-row radii (top row first) to unit coordinates.

    Returns (xs, ys): x is the radius over max_radius clamped to 1, y runs
    from 1 at the top row (rim) down to 0 at the bottom row (base).
    """
    radii = np.asarray(radii, dtype=np.float64)
    n = radii.size

    if max_radius > 0:
        xs = np.minimum(1.0, radii / max_radius)
    else:
        xs = np.zeros(n)

    if n > 1:
        ys = 1.0 - np.arange(n) / (n - 1)
    else:
        ys = np.full(n, 0.5)

    return xs, ys


def resample_profile(xs, ys, target_points):
    """
    Pick target_points rows at evenly spaced heights.

    Each target height takes the nearest row in scan order, ties going to
    the first match. The ends are pinned to y=0 and y=1 and the points are
    returned sorted by y.
    """
    if len(xs) == 0 or target_points < 1:
        return []

    points = []
    for k in range(target_points):
        y_target = k / (target_points - 1) if target_points > 1 else 0.5
        best = int(np.argmin(np.abs(ys - y_target)))
        points.append([float(xs[best]), float(ys[best])])

    points[0][1] = 0.0
    points[-1][1] = 1.0
    points.sort(key=lambda p: p[1])

    return [ProfilePoint(x=x, y=y) for x, y in points]
