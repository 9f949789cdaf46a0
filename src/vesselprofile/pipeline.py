"""
Main pipeline orchestrator for the vessel profile extractor.

Runs the photo-to-profile stages in order: resize, grayscale, threshold and
binarize, region selection and cleanup, silhouette completion, axis
selection, radius measurement, smoothing and resampling.

Degenerate input of any kind produces an empty ExtractResult; only file
decoding in extract_profile_from_file can raise.
"""

import numpy as np

from vesselprofile.config import ExtractConfig
from vesselprofile.io.load_image import load_image
from vesselprofile.io.save_artifacts import draw_axis_overlay
from vesselprofile.models import ExtractResult
from vesselprofile.preprocess.stage1_resize import resize_raster
from vesselprofile.preprocess.stage2_grayscale import prepare_gray
from vesselprofile.preprocess.stage4_binarize import binarize_image
from vesselprofile.profile.axis import find_axis
from vesselprofile.profile.radius import extract_radii, median_smooth
from vesselprofile.profile.resample import normalize_rows, resample_profile
from vesselprofile.regions.labeling import keep_largest_component
from vesselprofile.regions.morphology import morph_cleanup
from vesselprofile.regions.silhouette import complete_silhouette
from vesselprofile.tracer import get_tracer, trace


@trace(label="extract_profile")
def extract_profile(image, options=None, config=None, debug_writer=None):
    """
    Extract a normalized vessel profile from a decoded raster.

    Args:
        image: RGBA (or RGB) numpy array of shape (h, w, c)
        options: ExtractOptions (optional, defaults to config.options)
        config: ExtractConfig object (optional)
        debug_writer: DebugArtifactWriter for stage artifacts (optional)

    Returns:
        ExtractResult; the profile is empty when no vessel was detected
    """
    tracer = get_tracer()

    if config is None:
        config = ExtractConfig()
    options = (options or config.options).resolved()
    limits = config.limits.resolved()

    with tracer.span("preprocess", module="pipeline"):
        raster = resize_raster(image, limits)
        if raster is None:
            return ExtractResult.empty()

        gray = prepare_gray(raster, options, debug_writer)

    with tracer.span("segment", module="pipeline"):
        outcome = binarize_image(gray, options, limits, debug_writer)
        if not outcome.mask.any() or outcome.mask.all():
            tracer.event("No separable foreground", level="WARN")
            return ExtractResult.empty()

        mask = keep_largest_component(outcome.mask)
        mask = morph_cleanup(mask, options.cleanup)
        silhouette = complete_silhouette(mask, options.cleanup, limits, debug_writer)

    with tracer.span("measure", module="pipeline"):
        result = measure_profile(silhouette, options, limits, gray, debug_writer)

    tracer.event("Extraction complete", points=len(result.profile))
    return result


def measure_profile(silhouette, options, limits, gray=None, debug_writer=None):
    """
    Measure, smooth and resample the profile of a silhouette mask.

    Returns an empty result when the silhouette is shorter than
    limits.min_height rows or narrower than limits.min_radius pixels.
    """
    tracer = get_tracer()

    axis = find_axis(silhouette)
    if axis is None:
        tracer.event("Empty silhouette", level="WARN")
        return ExtractResult.empty()

    height = axis.bottom - axis.top + 1
    if height < limits.min_height:
        tracer.event("Subject too short", level="WARN", rows=height)
        return ExtractResult.empty()

    radii = extract_radii(silhouette, axis)
    max_radius = float(radii.max())
    tracer.event(
        "Axis",
        centerline=axis.centerline,
        top=axis.top,
        bottom=axis.bottom,
        side="right" if axis.right_side else "left",
        max_radius=max_radius,
    )
    if max_radius < limits.min_radius:
        tracer.event("Subject too narrow", level="WARN", max_radius=max_radius)
        return ExtractResult.empty()

    smoothed = median_smooth(radii, options.median_half_window)
    xs, ys = normalize_rows(smoothed, max_radius)
    profile = resample_profile(xs, ys, options.target_points)

    if debug_writer:
        if gray is not None:
            overlay = draw_axis_overlay(
                gray, silhouette, axis.centerline, axis.top, axis.bottom, axis.right_side,
            )
            debug_writer.save_image(overlay, "stage6", "01_axis_overlay.png")
        debug_writer.save_json({
            "top": axis.top,
            "bottom": axis.bottom,
            "centerline": axis.centerline,
            "side": "right" if axis.right_side else "left",
            "max_radius": max_radius,
            "radii": np.round(smoothed, 2).tolist(),
        }, "stage6", "metrics.json")

    return ExtractResult(profile=profile)


@trace(label="extract_profile_from_file")
def extract_profile_from_file(path, options=None, config=None, debug_writer=None):
    """
    Decode an image file and extract its profile.

    Raises FileNotFoundError or ValueError when the file cannot be read.
    """
    image, _ = load_image(path)
    return extract_profile(image, options=options, config=config, debug_writer=debug_writer)
