import json
import logging
from typing import Any

logger = logging.getLogger("app.events")

_REDACTED_KEYS = {"text", "transcript", "reply", "prompt", "content", "job", "context", "raw"}


def _sanitize_value(key: str, value: Any) -> Any:
	normalized_key = str(key or "").lower()
	if normalized_key in _REDACTED_KEYS:
		text = str(value or "")
		return {
			"redacted": True,
			"length": len(text),
		}
	if isinstance(value, (str, int, float, bool)) or value is None:
		return value
	if isinstance(value, dict):
		return {str(k): _sanitize_value(str(k), v) for k, v in value.items()}
	if isinstance(value, (list, tuple, set)):
		return [_sanitize_value(normalized_key, item) for item in value]
	return str(value)


def build_event(component: str, event: str, request_id: str, **kwargs) -> dict:
	payload = {
		"component": str(component or "app"),
		"event": str(event or "unknown"),
		"request_id": str(request_id or ""),
	}
	payload.update({str(k): _sanitize_value(str(k), v) for k, v in kwargs.items()})
	return payload


def log_event(component: str, event: str, request_id: str, level: int = logging.INFO, **kwargs) -> None:
	payload = build_event(component, event, request_id, **kwargs)
	logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def configure_logging(level: str = "INFO") -> None:
	logging.basicConfig(
		level=getattr(logging, str(level or "INFO").upper(), logging.INFO),
		format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
	)
