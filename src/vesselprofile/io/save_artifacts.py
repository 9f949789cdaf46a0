"""
Output files for the vessel profile extractor.

Each photo's result is written as <name>.profile.json in the illustration
editor's camelCase shape. With debugging on, every stage also leaves a PNG
and a metrics file under <out>/debug/<name>/<stage>/.
"""

import json
import os

import cv2
import numpy as np
from pydantic import BaseModel

from vesselprofile.tracer import get_tracer


def ensure_dir(path):
    if path:
        os.makedirs(path, exist_ok=True)


def profile_path(out_dir, name):
    """Location of the result file for one input photo."""
    return os.path.join(out_dir, f"{name}.profile.json")


def to_png_pixels(img):
    """
    uint8 pixels for OpenCV: masks become 0/255, gray images are clipped to
    [0, 255] and RGB overlays are reordered to BGR.
    """
    if img.dtype == np.bool_:
        return img.astype(np.uint8) * 255
    pixels = np.clip(img, 0, 255).astype(np.uint8)
    if pixels.ndim == 3 and pixels.shape[2] == 3:
        return cv2.cvtColor(pixels, cv2.COLOR_RGB2BGR)
    return pixels


def save_image(img, path, max_edge=None):
    """
    Write a mask, gray image or RGB overlay as a PNG.

    The longest side is capped at max_edge; masks are shrunk with
    nearest-neighbour sampling so they stay binary.
    """
    pixels = to_png_pixels(img)

    h, w = pixels.shape[:2]
    if max_edge and max(h, w) > max_edge:
        factor = max_edge / max(h, w)
        interpolation = cv2.INTER_NEAREST if img.dtype == np.bool_ else cv2.INTER_AREA
        pixels = cv2.resize(
            pixels, (max(1, int(w * factor)), max(1, int(h * factor))), interpolation=interpolation,
        )

    ensure_dir(os.path.dirname(path))
    if not cv2.imwrite(path, pixels):
        raise OSError(f"Could not write image: {path}")
    get_tracer().event("Saved image", path=path)


def _json_default(value):
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def save_json(data, path):
    """Write a result model (camelCase keys) or a metrics dict as JSON."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)

    ensure_dir(os.path.dirname(path))
    with open(path, "w", encoding="utf-8") as out:
        json.dump(data, out, indent=2, default=_json_default)
        out.write("\n")
    get_tracer().event("Saved JSON", path=path)


def draw_axis_overlay(gray, silhouette, centerline, top, bottom, right_side,
                      edge_color=(255, 0, 0), axis_color=(0, 160, 255)):
    """
    Draw the silhouette outline, centerline and measured side on a gray image.

    Returns an RGB image.
    """
    base = np.clip(gray, 0, 255).astype(np.uint8)
    overlay = cv2.cvtColor(base, cv2.COLOR_GRAY2RGB)

    edges = cv2.Canny(silhouette.astype(np.uint8) * 255, 50, 150)
    overlay[edges > 0] = edge_color

    cv2.line(overlay, (centerline, top), (centerline, bottom), axis_color, 1)

    marker_x = min(overlay.shape[1] - 1, centerline + 4) if right_side else max(0, centerline - 4)
    cv2.circle(overlay, (marker_x, top), 2, axis_color, -1)

    return overlay


class DebugArtifactWriter:
    """
    Per-photo debug output rooted at <out_dir>/debug/<run_id>.

    Stages pass their own directory name (stage2, stage4, ...) with each
    artifact. A disabled writer ignores every call.
    """

    def __init__(self, out_dir, run_id, enabled=True, max_edge=1600):
        self.root = os.path.join(out_dir, "debug", run_id)
        self.enabled = enabled
        self.max_edge = max_edge

    def stage_path(self, stage, filename):
        return os.path.join(self.root, stage, filename)

    def save_image(self, img, stage, filename):
        if self.enabled:
            save_image(img, self.stage_path(stage, filename), max_edge=self.max_edge)

    def save_json(self, data, stage, filename):
        if self.enabled:
            save_json(data, self.stage_path(stage, filename))
