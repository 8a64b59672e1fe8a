import threading
import time
from typing import Any


_lock = threading.Lock()
_metrics: dict[str, float] = {
    "turns_total": 0.0,
    "turns_succeeded": 0.0,
    "turns_rejected_input": 0.0,
    "transcription_failures": 0.0,
    "completion_failures": 0.0,
    "empty_transcripts": 0.0,
    "empty_replies": 0.0,
    "transcriptions_total": 0.0,
    "prep_requests_total": 0.0,
    "prep_malformed_json": 0.0,
    "prep_schema_mismatch": 0.0,
    "speech_syntheses_total": 0.0,
    "streams_started": 0.0,
    "streams_failed": 0.0,
    "rate_limited_requests": 0.0,
}

_UPSTREAM_STAGES = ("transcription", "completion", "streaming", "synthesis")
for _stage in _UPSTREAM_STAGES:
    _metrics[f"{_stage}_latency_total_ms"] = 0.0
    _metrics[f"{_stage}_latency_samples"] = 0.0


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def get_metric(name: str) -> float:
    with _lock:
        return float(_metrics.get(str(name or "").strip(), 0.0))


def observe_upstream_latency_ms(stage: str, value_ms: float) -> None:
    latency = max(0.0, float(value_ms or 0.0))
    with _lock:
        total_key = f"{stage}_latency_total_ms"
        samples_key = f"{stage}_latency_samples"
        _metrics[total_key] = float(_metrics.get(total_key, 0.0)) + latency
        _metrics[samples_key] = float(_metrics.get(samples_key, 0.0)) + 1.0


def reset_metrics() -> None:
    with _lock:
        for key in list(_metrics.keys()):
            _metrics[key] = 0.0


def get_metrics_snapshot(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    with _lock:
        data = dict(_metrics)

    payload: dict[str, Any] = {"generated_at": time.time()}
    for key, value in data.items():
        if key.endswith("_latency_total_ms"):
            payload[key] = round(float(value), 2)
        else:
            payload[key] = int(value)

    for stage in _UPSTREAM_STAGES:
        samples = max(1.0, float(data.get(f"{stage}_latency_samples") or 0.0))
        payload[f"avg_{stage}_latency_ms"] = round(float(data.get(f"{stage}_latency_total_ms") or 0.0) / samples, 2)

    if extra:
        payload.update(extra)
    return payload
