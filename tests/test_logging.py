"""Tests for structured logging, the pipeline timer and metrics."""

import json
import logging

from clientnote.core.logging import PipelineTimer, StructuredFormatter
from clientnote.core.metrics import MetricsCollector


def test_structured_formatter_includes_extra_fields():
    record = logging.LogRecord("clientnote.test", logging.INFO, __file__, 1, "Generation %s", ("done",), None)
    record.activity_id = "act-1"
    record.job_id = "gen-1"
    record.unrelated = "dropped"

    entry = json.loads(StructuredFormatter().format(record))

    assert entry["msg"] == "Generation done"
    assert entry["level"] == "INFO"
    assert entry["activity_id"] == "act-1"
    assert entry["job_id"] == "gen-1"
    assert "unrelated" not in entry


def test_pipeline_timer():
    timer = PipelineTimer()
    timer.mark("analysis")
    timer.mark("stream")

    assert timer.elapsed("analysis") >= 0
    assert timer.elapsed("missing") is None
    summary = timer.summary()
    assert summary.startswith("analysis: ")
    assert "stream: " in summary
    assert "Total: " in summary


def test_metrics_counters_with_labels():
    m = MetricsCollector()
    m.inc("generation.started", labels={"type": "brainstorm"})
    m.inc("generation.started", labels={"type": "brainstorm"})
    m.inc("generation.started", labels={"type": "session_note"})

    assert m.counter("generation.started", {"type": "brainstorm"}) == 2
    assert m.counter("generation.started") == 0
    assert "generation.started{type=session_note}" in m.snapshot()["counters"]


def test_metrics_histogram_window():
    m = MetricsCollector()
    for value in range(m.HISTOGRAM_MAX_SAMPLES + 10):
        m.observe("generation.duration_ms", float(value))

    summary = m.snapshot()["histograms"]["generation.duration_ms"]
    assert summary["count"] == m.HISTOGRAM_MAX_SAMPLES
    assert summary["min"] == 10.0

    m.reset()
    assert m.snapshot()["histograms"] == {}
