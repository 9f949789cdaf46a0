"""
Configuration management for the vessel profile extractor.

Per-call extraction options plus processing limits, tracing and debug
settings. Loads YAML configuration with defaults for everything missing.
"""

import math
import os
from dataclasses import dataclass, field, replace

import yaml

from vesselprofile.models import Polarity


DEFAULT_TARGET_POINTS = 18
MIN_TARGET_POINTS = 8
MAX_TARGET_POINTS = 24
MAX_THRESHOLD_BIAS = 50
MAX_SMOOTHING = 5


@dataclass
class ExtractOptions:
    """User-facing options for one profile extraction."""
    blur: int = 1  # 0 = off, 1 = 3x3 box, 2 = 5x5 box
    smoothing: int = 2  # median half-window
    polarity: Polarity = Polarity.AUTO
    target_points: int = DEFAULT_TARGET_POINTS
    threshold_bias: float = 0.0
    cleanup: int = 0  # 0 = off, 1 = close, 2 = close + open/close
    contrast_stretch: bool = False

    @classmethod
    def from_invert(cls, invert=None, **kwargs):
        """
        Build options from the legacy nullable ``invert`` flag.

        True forces dark foreground, False forces light foreground and None
        leaves polarity detection to the border heuristic.
        """
        return cls(polarity=Polarity.from_invert(invert), **kwargs)

    def resolved(self):
        """
        Return a copy with every option clamped to its supported range.

        Never raises: values that cannot be interpreted fall back to the
        defaults.
        """
        defaults = ExtractOptions()

        blur = _as_int(self.blur, defaults.blur)
        if blur not in (0, 1, 2):
            blur = 0

        cleanup = _as_int(self.cleanup, defaults.cleanup)
        if cleanup not in (0, 1, 2):
            cleanup = 0

        smoothing = max(0, _as_int(self.smoothing, defaults.smoothing))

        target_points = _as_int(self.target_points, defaults.target_points)
        target_points = max(MIN_TARGET_POINTS, min(MAX_TARGET_POINTS, target_points))

        bias = _as_float(self.threshold_bias, defaults.threshold_bias)
        bias = max(-MAX_THRESHOLD_BIAS, min(MAX_THRESHOLD_BIAS, bias))

        try:
            polarity = Polarity(self.polarity)
        except (TypeError, ValueError):
            polarity = Polarity.AUTO

        return replace(
            self,
            blur=blur,
            smoothing=smoothing,
            polarity=polarity,
            target_points=target_points,
            threshold_bias=bias,
            cleanup=cleanup,
            contrast_stretch=bool(self.contrast_stretch),
        )

    @property
    def median_half_window(self):
        """Median filter half-window actually applied to the radii."""
        return min(self.smoothing, MAX_SMOOTHING)


@dataclass
class LimitsConfig:
    """Processing budget and degenerate-input thresholds."""
    max_width: int = 500
    max_pixels: int = 500 * 800
    min_height: int = 10  # rows
    min_radius: int = 2  # pixels
    min_fraction: float = 0.12
    max_fraction: float = 0.88
    fallback_shift: int = 30  # intensity levels

    def resolved(self):
        """
        Return a copy with every limit coerced to a usable number.

        Non-numeric or out-of-range values fall back to the defaults, and a
        fraction band with min above max falls back as a whole.
        """
        defaults = LimitsConfig()

        def positive_int(value, default):
            number = _as_int(value, default)
            return number if number >= 1 else default

        min_fraction = _as_float(self.min_fraction, defaults.min_fraction)
        max_fraction = _as_float(self.max_fraction, defaults.max_fraction)
        if not 0.0 <= min_fraction <= max_fraction <= 1.0:
            min_fraction, max_fraction = defaults.min_fraction, defaults.max_fraction

        shift = _as_int(self.fallback_shift, defaults.fallback_shift)

        return replace(
            self,
            max_width=positive_int(self.max_width, defaults.max_width),
            max_pixels=positive_int(self.max_pixels, defaults.max_pixels),
            min_height=positive_int(self.min_height, defaults.min_height),
            min_radius=max(0, _as_int(self.min_radius, defaults.min_radius)),
            min_fraction=min_fraction,
            max_fraction=max_fraction,
            fallback_shift=max(0, min(255, shift)),
        )


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class DebugConfig:
    """Configuration for debug artifact generation."""
    enabled: bool = False
    max_edge_scale: int = 1600


@dataclass
class ExtractConfig:
    """Complete extractor configuration."""
    options: ExtractOptions = field(default_factory=ExtractOptions)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def _as_int(value, default):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return int(number)


def _as_float(value, default):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = ExtractConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_section(section, values):
    for key, value in (values or {}).items():
        if hasattr(section, key):
            setattr(section, key, value)


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass."""
    if "options" in yaml_data:
        options_data = dict(yaml_data["options"] or {})
        if "invert" in options_data:
            config.options.polarity = Polarity.from_invert(options_data.pop("invert"))
        if "polarity" in options_data:
            try:
                config.options.polarity = Polarity(options_data.pop("polarity"))
            except (TypeError, ValueError):
                config.options.polarity = Polarity.AUTO
        _merge_section(config.options, options_data)

    if "limits" in yaml_data:
        _merge_section(config.limits, yaml_data["limits"])
        config.limits = config.limits.resolved()

    if "tracing" in yaml_data:
        _merge_section(config.tracing, yaml_data["tracing"])

    if "debug" in yaml_data:
        _merge_section(config.debug, yaml_data["debug"])

    return config


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    config = ExtractConfig()

    yaml_data = {
        "options": {
            "blur": config.options.blur,
            "smoothing": config.options.smoothing,
            "polarity": config.options.polarity.value,
            "target_points": config.options.target_points,
            "threshold_bias": config.options.threshold_bias,
            "cleanup": config.options.cleanup,
            "contrast_stretch": config.options.contrast_stretch,
        },
        "limits": {
            "max_width": config.limits.max_width,
            "max_pixels": config.limits.max_pixels,
            "min_height": config.limits.min_height,
            "min_radius": config.limits.min_radius,
            "min_fraction": config.limits.min_fraction,
            "max_fraction": config.limits.max_fraction,
            "fallback_shift": config.limits.fallback_shift,
        },
        "tracing": {
            "enabled": config.tracing.enabled,
            "level": config.tracing.level,
        },
        "debug": {
            "enabled": config.debug.enabled,
            "max_edge_scale": config.debug.max_edge_scale,
        },
    }

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
