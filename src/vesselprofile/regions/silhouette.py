"""
Silhouette completion for decorated vessels.

Surface decoration often breaks the binarized vessel into holed or split
regions. Two repairs are applied here: an optional flood fill from the
image edges and an always-on per-row span fill.
"""

import numpy as np

from vesselprofile.config import LimitsConfig
from vesselprofile.preprocess.stage4_binarize import foreground_fraction, is_degenerate
from vesselprofile.regions.labeling import keep_largest_component, label_components
from vesselprofile.tracer import get_tracer, trace


def fill_from_edges(mask):
    """
    Treat everything not reachable from the top, left or right edge as inside.

    Background pixels 4-connected to those edges are outside; the bottom
    edge is not a seed because the vessel base usually touches it.
    """
    labels, count = label_components(~mask)
    if count == 0:
        return np.ones_like(mask, dtype=bool)

    edge_labels = np.concatenate([labels[0, :], labels[:, 0], labels[:, -1]])
    edge_labels = np.unique(edge_labels[edge_labels > 0])

    outside = np.isin(labels, edge_labels)
    return ~outside


def span_fill(mask):
    """Fill every row between its leftmost and rightmost foreground pixel."""
    h, w = mask.shape
    has_fg = mask.any(axis=1)
    first = np.argmax(mask, axis=1)
    last = w - 1 - np.argmax(mask[:, ::-1], axis=1)

    cols = np.arange(w)
    filled = (cols >= first[:, None]) & (cols <= last[:, None])
    return filled & has_fg[:, None]


@trace(label="stage5_silhouette")
def complete_silhouette(mask, cleanup, limits=None, debug_writer=None):
    """
    Turn the cleaned mask into the silhouette used for measurement.

    With cleanup enabled and a degenerate mask, the edge flood fill is tried
    and kept only if its own foreground fraction is reasonable. The span
    fill is always applied last.
    """
    tracer = get_tracer()
    limits = limits or LimitsConfig()

    if cleanup >= 1:
        fraction = foreground_fraction(mask)
        if is_degenerate(fraction, limits):
            filled = fill_from_edges(mask)
            filled_fraction = foreground_fraction(filled)
            if not is_degenerate(filled_fraction, limits):
                mask = keep_largest_component(filled)
                tracer.event("Edge fill adopted", fraction=fraction, filled_fraction=filled_fraction)
            else:
                tracer.event("Edge fill rejected", level="DEBUG", filled_fraction=filled_fraction)

    silhouette = span_fill(mask)

    if debug_writer:
        debug_writer.save_image(silhouette, "stage5", "01_silhouette.png")

    return silhouette
