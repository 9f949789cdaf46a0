"""Pytest fixtures for vessel profile tests."""

import os
import tempfile

import cv2
import numpy as np
import pytest


def make_rgba(gray_values):
    """Build an opaque RGBA raster from a 2-D array of gray levels."""
    gray = np.asarray(gray_values, dtype=np.uint8)
    rgba = np.empty(gray.shape + (4,), dtype=np.uint8)
    rgba[..., 0] = gray
    rgba[..., 1] = gray
    rgba[..., 2] = gray
    rgba[..., 3] = 255
    return rgba


@pytest.fixture
def rgba():
    """Factory turning a 2-D gray array into an RGBA raster."""
    return make_rgba


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def triangle_image():
    """50x100 white image with a black triangle: apex top-centre, 40px base near the bottom."""
    gray = np.full((100, 50), 255, dtype=np.uint8)
    pts = np.array([[25, 5], [5, 95], [45, 95]], dtype=np.int32)
    cv2.fillPoly(gray, [pts], 0)
    return make_rgba(gray)


@pytest.fixture
def jar_image():
    """120x160 white image with a black jar: narrow neck, wide belly, flat base."""
    gray = np.full((160, 120), 255, dtype=np.uint8)
    # Right half outline from rim to base, mirrored for the left half
    right = [(72, 15), (70, 35), (95, 70), (100, 100), (85, 140), (80, 145)]
    left = [(120 - x, y) for x, y in reversed(right)]
    pts = np.array(right + left, dtype=np.int32)
    cv2.fillPoly(gray, [pts], 0)
    return make_rgba(gray)


@pytest.fixture
def light_on_dark_image():
    """Light rectangular vessel on a dark background."""
    gray = np.full((120, 90), 20, dtype=np.uint8)
    cv2.rectangle(gray, (25, 20), (65, 100), 230, -1)
    return make_rgba(gray)


@pytest.fixture
def decorated_vessel_image():
    """Dark cylindrical vessel with light decoration bands that do not reach its sides."""
    gray = np.full((100, 70), 255, dtype=np.uint8)
    cv2.rectangle(gray, (20, 15), (50, 85), 0, -1)
    for y in (30, 45, 60):
        cv2.rectangle(gray, (24, y), (46, y + 4), 255, -1)
    return make_rgba(gray)


@pytest.fixture
def uniform_gray_image():
    """80x80 image with no subject."""
    return make_rgba(np.full((80, 80), 128, dtype=np.uint8))


@pytest.fixture
def black_image():
    """Fully black image: a single-spike histogram."""
    return make_rgba(np.zeros((60, 60), dtype=np.uint8))


@pytest.fixture
def default_config():
    """Create default extractor configuration."""
    from vesselprofile.config import ExtractConfig
    return ExtractConfig()


@pytest.fixture
def default_options():
    """Create default, resolved extraction options."""
    from vesselprofile.config import ExtractOptions
    return ExtractOptions().resolved()


@pytest.fixture
def triangle_file(temp_dir, triangle_image):
    """Write the triangle image to a PNG file."""
    path = os.path.join(temp_dir, "triangle.png")
    cv2.imwrite(path, cv2.cvtColor(triangle_image, cv2.COLOR_RGBA2BGRA))
    return path


@pytest.fixture
def uniform_file(temp_dir, uniform_gray_image):
    """Write the uniform gray image to a PNG file."""
    path = os.path.join(temp_dir, "uniform.png")
    cv2.imwrite(path, cv2.cvtColor(uniform_gray_image, cv2.COLOR_RGBA2BGRA))
    return path
