"""Tests for union-find connected-component labeling."""

import numpy as np
import pytest

from vesselprofile.regions.labeling import (
    UnionFind, component_sizes, keep_largest_component, label_components, row_runs,
)


def mask_from(rows):
    """Build a boolean mask from strings of '#' (foreground) and '.'."""
    return np.array([[c == "#" for c in row] for row in rows])


class TestUnionFind:
    """Tests for the disjoint-set structure."""

    def test_union_keeps_minimum_root(self):
        """Union keeps the smaller label as root."""
        uf = UnionFind()
        a, b, c = uf.make_set(), uf.make_set(), uf.make_set()

        assert uf.union(c, b) == b
        assert uf.union(c, a) == a
        assert uf.find(b) == a
        assert uf.find(c) == a

    def test_long_chain_without_recursion(self):
        """Long parent chains resolve without recursion."""
        uf = UnionFind()
        labels = [uf.make_set() for _ in range(20000)]
        # Chain every label to the previous one
        for prev, label in zip(labels, labels[1:]):
            uf.parent[label] = prev

        assert uf.find(labels[-1]) == labels[0]
        # Path fully compressed
        assert uf.parent[labels[-1]] == labels[0]
        assert uf.parent[labels[10000]] == labels[0]

    def test_roots_table(self):
        """The roots table maps every label to its root."""
        uf = UnionFind()
        a, b = uf.make_set(), uf.make_set()
        uf.union(a, b)

        assert uf.roots().tolist() == [0, a, a]


class TestRowRuns:
    """Tests for run extraction."""

    def test_runs(self):
        """Runs are half-open column ranges."""
        row = np.array([True, True, False, True, False, False, True])

        assert row_runs(row) == [(0, 2), (3, 4), (6, 7)]

    def test_empty_row(self):
        """An empty row has no runs."""
        assert row_runs(np.zeros(5, dtype=bool)) == []


class TestLabelComponents:
    """Tests for 4-connected labeling."""

    def test_two_blobs(self):
        """Separate blobs get separate labels."""
        mask = mask_from([
            "##....",
            "##..##",
            "....##",
        ])

        labels, count = label_components(mask)

        assert count == 2
        assert labels[0, 0] == 1
        assert labels[1, 4] == 2
        assert set(np.unique(labels).tolist()) == {0, 1, 2}

    def test_u_shape_merges(self):
        """Arms joined below merge into one label."""
        mask = mask_from([
            "#...#",
            "#...#",
            "#####",
        ])

        labels, count = label_components(mask)

        assert count == 1
        assert np.all(labels[mask] == 1)

    def test_diagonal_pixels_not_connected(self):
        """Diagonal neighbours are separate components."""
        mask = mask_from([
            "#.",
            ".#",
        ])

        _, count = label_components(mask)

        assert count == 2

    def test_labels_follow_first_pixel_order(self):
        """Labels are numbered in raster order."""
        mask = mask_from([
            "...#",
            "#..#",
            "#...",
        ])

        labels, count = label_components(mask)

        assert count == 2
        assert labels[0, 3] == 1
        assert labels[1, 0] == 2

    def test_w_shape_with_late_merge(self):
        """Three arms merged by the last row share one label."""
        mask = mask_from([
            "#.#.#",
            "#.#.#",
            "#####",
        ])

        labels, count = label_components(mask)

        assert count == 1
        assert component_sizes(labels, count).tolist() == [4, 11]

    def test_empty_mask(self):
        """An empty mask has no components."""
        labels, count = label_components(np.zeros((4, 4), dtype=bool))

        assert count == 0
        assert not labels.any()


class TestKeepLargestComponent:
    """Tests for the keep-largest filter."""

    def test_larger_blob_kept(self):
        """Only the largest component survives."""
        mask = np.zeros((20, 20), dtype=bool)
        mask[2:5, 2:5] = True  # 9 px
        mask[10:16, 10:16] = True  # 36 px

        kept = keep_largest_component(mask)

        assert kept.sum() == 36
        assert kept[12, 12]
        assert not kept[3, 3]

    def test_tie_goes_to_first_in_raster_order(self):
        """Equal sizes keep the first component in raster order."""
        mask = mask_from([
            "....##",
            "##..##",
            "##....",
        ])

        kept = keep_largest_component(mask)

        assert kept[0, 4]
        assert not kept[1, 0]

    def test_empty_mask_unchanged(self):
        """An empty mask comes back as an empty copy."""
        mask = np.zeros((5, 5), dtype=bool)

        kept = keep_largest_component(mask)

        assert not kept.any()
        assert kept is not mask

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_random_mask_single_component(self, seed):
        """Random noise reduces to one component."""
        rng = np.random.default_rng(seed)
        mask = rng.random((40, 40)) > 0.5

        kept = keep_largest_component(mask)

        _, count = label_components(kept)
        assert count == 1
        assert kept.sum() <= mask.sum()
        assert not (kept & ~mask).any()
