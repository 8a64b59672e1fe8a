import json
import logging

import pytest

from app.system_metrics import (
    get_metric,
    get_metrics_snapshot,
    increment_metric,
    observe_upstream_latency_ms,
)
from core.logger import build_event, log_event


def test_metrics_snapshot_reports_counters_and_latency_averages():
    increment_metric("turns_total")
    increment_metric("turns_total")
    increment_metric("")
    observe_upstream_latency_ms("transcription", 100.0)
    observe_upstream_latency_ms("transcription", 300.0)

    snapshot = get_metrics_snapshot(extra={"upstream_configured": True})

    assert get_metric("turns_total") == 2
    assert snapshot["turns_total"] == 2
    assert snapshot["transcription_latency_samples"] == 2
    assert snapshot["avg_transcription_latency_ms"] == 200.0
    assert snapshot["avg_completion_latency_ms"] == 0.0
    assert snapshot["upstream_configured"] is True


def test_event_redacts_conversation_text():
    event = build_event(
        "conversation",
        "replied",
        "req-1",
        transcript="my salary is 100k",
        reply="noted",
        history_turns=3,
        nested={"text": "secret", "code": "X"},
    )

    assert event["transcript"] == {"redacted": True, "length": 17}
    assert event["reply"] == {"redacted": True, "length": 5}
    assert event["history_turns"] == 3
    assert event["nested"] == {"text": {"redacted": True, "length": 6}, "code": "X"}


def test_log_event_emits_single_json_line(caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING, logger="app.events"):
        log_event("conversation", "empty_transcript", "req-9", level=logging.WARNING)

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert json.loads(record.getMessage()) == {
        "component": "conversation",
        "event": "empty_transcript",
        "request_id": "req-9",
    }
