"""
Stage tracing for the vessel profile pipeline.

Every pipeline stage runs inside a span, and stages report the decisions
they take (threshold, polarity tier, foreground fraction, axis, radius
range) as events carrying structured fields. Output is indented text on
stderr, or one JSON object per line, optionally mirrored to a file.
Tracing is off by default and a disabled tracer writes nothing.
"""

import functools
import json
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import numpy as np
from pydantic import BaseModel


LEVELS = ("ERROR", "WARN", "INFO", "DEBUG")


@dataclass
class TraceSettings:
    """Where trace lines go and how much detail they carry."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False

    def allows(self, level):
        if not self.enabled:
            return False
        limit = LEVELS.index(self.level) if self.level in LEVELS else 2
        rank = LEVELS.index(level) if level in LEVELS else 2
        return rank <= limit


class Tracer:
    """
    Process-wide stage tracer.

    Spans nest: each open span adds one indent step and is the location
    reported by events raised while it is open.
    """

    def __init__(self):
        self.settings = TraceSettings()
        self._stages = []  # (stage, module) of open spans
        self._sink = None

    def configure(self, enabled=False, level="INFO", file_path=None, json_output=False):
        self.close()
        self.settings = TraceSettings(enabled, level.upper(), file_path, json_output)
        if enabled and file_path:
            self._sink = open(file_path, "w", encoding="utf-8")

    def close(self):
        """Close the mirror file, if any."""
        if self._sink is not None:
            self._sink.close()
            self._sink = None

    def _emit(self, level, module, stage, depth, message, fields):
        if not self.settings.allows(level):
            return

        clock = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        if self.settings.json_output:
            line = json.dumps({
                "time": clock,
                "level": level,
                "depth": depth,
                "module": module,
                "stage": stage,
                "message": message,
                "fields": {k: _json_value(v) for k, v in fields.items()},
            })
        else:
            where = f"{module}:{stage}" if stage else module
            rendered = " ".join(f"{k}={summarize(v)}" for k, v in fields.items())
            line = f"{clock} {level:<5} {'  ' * depth}{where}  {message}"
            if rendered:
                line += " " + rendered

        print(line, file=sys.stderr)
        if self._sink is not None:
            self._sink.write(line + "\n")
            self._sink.flush()

    @contextmanager
    def span(self, stage, module="", **fields):
        """Run a block as a named stage, logging its start, end and duration."""
        if not self.settings.enabled:
            yield
            return

        depth = len(self._stages)
        self._emit("INFO", module, stage, depth, "start", fields)
        started = time.perf_counter()
        self._stages.append((stage, module))
        try:
            yield
        except Exception as e:
            self._stages.pop()
            self._emit("ERROR", module, stage, depth, "failed", {
                "ms": _elapsed_ms(started),
                "error": f"{type(e).__name__}: {e}",
            })
            raise
        self._stages.pop()
        self._emit("INFO", module, stage, depth, "end ok", {"ms": _elapsed_ms(started)})

    def event(self, message, level="INFO", **fields):
        """Report a decision or measurement from the innermost open stage."""
        if not self.settings.allows(level):
            return
        stage, module = self._stages[-1] if self._stages else ("", "")
        self._emit(level, module, stage, len(self._stages), message, fields)


def _elapsed_ms(started):
    return round((time.perf_counter() - started) * 1000, 1)


def _json_value(value):
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, np.generic):
        return value.item()
    return summarize(value)


def summarize(value, max_len=200):
    """
    One-line description of a stage argument or field value.

    Masks report their foreground count and gray images their value
    range; results report their point count. Never longer than max_len.
    """
    try:
        text = _describe(value)
    except (TypeError, ValueError):
        text = f"<{type(value).__name__}>"
    if len(text) > max_len:
        return text[:max_len - 3] + "..."
    return text


def _describe(value):
    if value is None:
        return "None"
    if isinstance(value, Enum):
        return str(value.value)

    if isinstance(value, np.ndarray):
        shape = "x".join(str(s) for s in value.shape)
        if value.dtype == np.bool_:
            return f"mask({shape},fg={int(np.count_nonzero(value))})"
        if value.size and np.issubdtype(value.dtype, np.number):
            return f"ndarray({value.dtype},{shape},range={value.min():.4g}..{value.max():.4g})"
        return f"ndarray({value.dtype},{shape})"
    if isinstance(value, np.generic):
        return _describe(value.item())

    if isinstance(value, BaseModel):
        profile = getattr(value, "profile", None)
        if profile is not None:
            return f"{type(value).__name__}(points={len(profile)})"
        return f"{type(value).__name__}(...)"

    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        return f"{value:.4g}"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return repr(value) if len(value) <= 50 else f"str(len={len(value)})"
    if isinstance(value, (list, tuple)):
        return f"{type(value).__name__}(len={len(value)})"
    if isinstance(value, dict):
        keys = ",".join(str(k) for k in list(value)[:5])
        return f"dict(len={len(value)},keys=[{keys}])"
    return f"<{type(value).__name__}>"


def trace(label=None):
    """Run the decorated stage function inside a span named label."""
    def decorator(func):
        stage = label or func.__name__
        module = (func.__module__ or "").rsplit(".", 1)[-1]

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not _tracer.settings.enabled:
                return func(*args, **kwargs)
            with _tracer.span(stage, module=module):
                return func(*args, **kwargs)

        return wrapper
    return decorator


_tracer = Tracer()


def get_tracer():
    return _tracer


def configure_tracer(enabled=False, level="INFO", file_path=None, json_output=False):
    """Reconfigure the process-wide tracer."""
    _tracer.configure(enabled=enabled, level=level, file_path=file_path, json_output=json_output)
