"""Tests for the tracer module."""

import json
import os

import numpy as np
import pytest

from vesselprofile.models import ExtractResult, Polarity, ProfilePoint
from vesselprofile.tracer import configure_tracer, get_tracer, summarize, trace


@pytest.fixture
def enabled_tracer():
    configure_tracer(enabled=True, level="INFO")
    yield get_tracer()
    configure_tracer(enabled=False)


def read_records(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f.read().strip().split("\n")]


class TestSummarize:
    """Tests for value summarization."""

    def test_gray_image_summary(self):
        """Gray images report dtype, shape and value range."""
        gray = np.zeros((100, 200), dtype=np.float64)
        gray[0, 0] = 255.0

        summary = summarize(gray)

        assert summary == "ndarray(float64,100x200,range=0..255)"

    def test_raster_summary(self):
        """Rasters report their channel count in the shape."""
        summary = summarize(np.zeros((100, 200, 4), dtype=np.uint8))

        assert "100x200x4" in summary
        assert "uint8" in summary

    def test_mask_summary_counts_foreground(self):
        """Masks report how many pixels are foreground."""
        mask = np.zeros((10, 20), dtype=bool)
        mask[2:4, 5:10] = True

        assert summarize(mask) == "mask(10x20,fg=10)"

    def test_numpy_scalar(self):
        """Numpy scalars render like Python numbers."""
        assert summarize(np.float64(0.5)) == "0.5"
        assert summarize(np.int32(7)) == "7"

    def test_enum_renders_value(self):
        """Enums render as their value."""
        assert summarize(Polarity.DARK) == "dark"

    def test_result_reports_point_count(self):
        """Extraction results report their profile length."""
        result = ExtractResult(profile=[ProfilePoint(x=1.0, y=0.0), ProfilePoint(x=0.5, y=1.0)])

        assert summarize(result) == "ExtractResult(points=2)"

    def test_other_model(self):
        """Models without a profile render by type name."""
        assert summarize(ProfilePoint(x=0.5, y=0.25)) == "ProfilePoint(...)"

    def test_summary_capped_length(self):
        """Summaries never exceed max_len."""
        large_dict = {f"key_{i}": f"value_{i}" for i in range(100)}

        assert len(summarize(large_dict, max_len=20)) <= 20

    def test_containers_and_strings(self):
        """Containers and long strings render by length."""
        assert summarize([1, 2, 3, 4, 5]) == "list(len=5)"
        assert summarize("a" * 1000) == "str(len=1000)"
        assert summarize("dark") == "'dark'"
        assert summarize(None) == "None"


class TestTracerSpan:
    """Tests for spans and events."""

    def test_span_nesting(self, capsys, enabled_tracer):
        """Nested spans indent their events and log start and end."""
        with enabled_tracer.span("outer", module="test"):
            with enabled_tracer.span("inner", module="test"):
                enabled_tracer.event("inside")

        lines = capsys.readouterr().err.strip().split("\n")

        assert len(lines) == 5
        assert lines[0].endswith("test:outer  start")
        assert "    test:inner  inside" in lines[2]
        assert "test:outer  end ok ms=" in lines[-1]

    def test_event_fields_rendered(self, capsys, enabled_tracer):
        """Event fields are appended as key=value pairs."""
        with enabled_tracer.span("stage4_binarize", module="stage4_binarize"):
            enabled_tracer.event("Polarity", tier="border", fraction=0.25)

        err = capsys.readouterr().err

        assert "Polarity tier='border' fraction=0.25" in err

    def test_tracer_disabled_no_output(self, capsys):
        """A disabled tracer writes nothing."""
        configure_tracer(enabled=False)
        tracer = get_tracer()

        with tracer.span("test", module="test"):
            tracer.event("should not appear")

        assert capsys.readouterr().err == ""

    def test_level_filters_events(self, capsys):
        """Events below the configured level are dropped."""
        configure_tracer(enabled=True, level="WARN")
        tracer = get_tracer()
        try:
            tracer.event("chatty")
            tracer.event("degenerate mask", level="WARN")
        finally:
            configure_tracer(enabled=False)

        err = capsys.readouterr().err

        assert "chatty" not in err
        assert "degenerate mask" in err

    def test_span_failure_logged_and_reraised(self, capsys, enabled_tracer):
        """A failing span logs an ERROR line and re-raises."""
        with pytest.raises(ValueError):
            with enabled_tracer.span("boom", module="test"):
                raise ValueError("bad raster")

        err = capsys.readouterr().err

        assert "ERROR" in err
        assert "ValueError: bad raster" in err

    def test_json_records_to_file(self, temp_dir, capsys):
        """JSON output keeps field values as native JSON types."""
        path = os.path.join(temp_dir, "trace.log")
        configure_tracer(enabled=True, file_path=path, json_output=True)
        try:
            with get_tracer().span("stage4_binarize", module="stage4_binarize"):
                get_tracer().event(
                    "Threshold", otsu=np.int64(127), dark_background=False, polarity=Polarity.AUTO,
                )
        finally:
            configure_tracer(enabled=False)

        records = read_records(path)

        assert [r["message"] for r in records] == ["start", "Threshold", "end ok"]
        event = records[1]
        assert event["stage"] == "stage4_binarize"
        assert event["depth"] == 1
        assert event["fields"] == {"otsu": 127, "dark_background": False, "polarity": "auto"}


class TestTraceDecorator:
    """Tests for the @trace decorator."""

    def test_decorator_runs_function(self):
        """Decorated functions run normally when tracing is off."""
        configure_tracer(enabled=False)

        @trace(label="test_func")
        def my_func(x):
            return x * 2

        assert my_func(5) == 10

    def test_decorator_emits_span(self, capsys, enabled_tracer):
        """Decorated functions run inside a span named by the label."""
        @trace(label="stage_x")
        def my_func(x):
            return x + 1

        assert my_func(1) == 2
        assert "test_tracer:stage_x  start" in capsys.readouterr().err

    def test_decorator_with_exception(self):
        """Exceptions propagate through the decorator."""
        configure_tracer(enabled=False)

        @trace(label="failing_func")
        def failing_func():
            raise ValueError("test error")

        with pytest.raises(ValueError):
            failing_func()


class TestPipelineTrace:
    """Tests for the decisions stages report."""

    def test_stage_decisions_recorded(self, triangle_image, temp_dir):
        """A traced extraction records threshold, polarity and axis fields."""
        from vesselprofile.pipeline import extract_profile

        path = os.path.join(temp_dir, "trace.log")
        configure_tracer(enabled=True, file_path=path, json_output=True)
        try:
            extract_profile(triangle_image)
        finally:
            configure_tracer(enabled=False)

        events = {r["message"]: r["fields"] for r in read_records(path)}

        assert set(events["Threshold"]) == {"otsu", "threshold", "background_mean", "dark_background"}
        assert events["Polarity"]["tier"] == "border"
        assert events["Axis"]["side"] in ("left", "right")
        assert events["Extraction complete"] == {"points": 18}
