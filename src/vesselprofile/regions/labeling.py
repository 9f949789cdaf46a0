"""
Connected-component labeling for foreground masks.

4-connected labeling with a union-find over horizontal foreground runs:
one raster scan unions each run with the runs it touches in the row above,
a second pass resolves every label to its root.
"""

import numpy as np

from vesselprofile.tracer import get_tracer, trace


class UnionFind:
    """
    Disjoint sets over positive integer labels.

    Label 0 is reserved for background. find() compresses paths with a
    loop, so long label chains never hit the recursion limit.
    """

    def __init__(self):
        self.parent = [0]

    def make_set(self):
        label = len(self.parent)
        self.parent.append(label)
        return label

    def find(self, x):
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            nxt = self.parent[x]
            self.parent[x] = root
            x = nxt
        return root

    def union(self, a, b):
        """Merge two sets; the smaller root id becomes the root."""
        ra = self.find(a)
        rb = self.find(b)
        root = min(ra, rb)
        self.parent[ra] = root
        self.parent[rb] = root
        return root

    def roots(self):
        """Array mapping every label to its root."""
        return np.array([self.find(label) for label in range(len(self.parent))], dtype=np.int32)


def row_runs(row):
    """
    Foreground runs of one mask row as (start, end) pairs, end exclusive.
    """
    padded = np.concatenate(([False], row, [False])).astype(np.int8)
    edges = np.flatnonzero(np.diff(padded))
    return list(zip(edges[0::2].tolist(), edges[1::2].tolist()))


def label_components(mask):
    """
    Label 4-connected foreground components.

    Returns (labels, count): an int32 label map with 0 for background and
    components numbered 1..count in the raster order of their first pixel.
    """
    h, w = mask.shape
    labels = np.zeros((h, w), dtype=np.int32)
    uf = UnionFind()

    prev_runs = []
    for y in range(h):
        runs = []
        j = 0
        for start, end in row_runs(mask[y]):
            # Skip runs above that end before this one starts
            while j < len(prev_runs) and prev_runs[j][1] <= start:
                j += 1

            label = 0
            k = j
            while k < len(prev_runs) and prev_runs[k][0] < end:
                above = prev_runs[k][2]
                label = uf.find(above) if label == 0 else uf.union(label, above)
                k += 1

            if label == 0:
                label = uf.make_set()

            labels[y, start:end] = label
            runs.append((start, end, label))
        prev_runs = runs

    if len(uf.parent) == 1:
        return labels, 0

    roots = uf.roots()
    labels = roots[labels]

    # Roots are the smallest label of each set, so sorting them keeps
    # first-pixel raster order
    unique_roots = np.unique(roots[1:])
    lookup = np.zeros(len(roots), dtype=np.int32)
    lookup[unique_roots] = np.arange(1, len(unique_roots) + 1, dtype=np.int32)

    return lookup[labels], len(unique_roots)


def component_sizes(labels, count):
    """Pixel count per label; index 0 is the background count."""
    return np.bincount(labels.ravel(), minlength=count + 1)


@trace(label="keep_largest_component")
def keep_largest_component(mask):
    """
    Keep only the largest 4-connected component of a mask.

    Ties go to the component encountered first in raster order. A mask
    without foreground is returned unchanged.
    """
    tracer = get_tracer()

    labels, count = label_components(mask)
    if count == 0:
        return mask.copy()

    sizes = component_sizes(labels, count)
    sizes[0] = 0
    best = int(np.argmax(sizes))

    tracer.event("Largest component kept", components=count, label=best, pixels=int(sizes[best]))

    return labels == best
