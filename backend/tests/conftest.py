import os
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# read at import time by core.config
os.environ["RATE_LIMIT_ENABLED"] = "false"

from app.conversation.models import AudioClip  # noqa: E402
from app.errors import CompletionFailed, TranscriptionFailed  # noqa: E402
from app.system_metrics import reset_metrics  # noqa: E402
from core.config import OpenAISettings  # noqa: E402


VALID_PREP_JSON = (
    '{"questions": ['
    '{"question": "Tell me about a time you led a migration.", "modelAnswer": "I led the move from cron jobs to Airflow, cutting failed runs by half."},'
    '{"question": "How do you review pull requests?", "modelAnswer": "I check intent first, then tests, then naming and structure."},'
    '{"question": "Describe a production incident you owned.", "modelAnswer": "A cache stampede took checkout down; I added request coalescing."},'
    '{"question": "How do you choose between SQL and NoSQL?", "modelAnswer": "I start from access patterns and consistency needs, not fashion."},'
    '{"question": "What does good observability mean to you?", "modelAnswer": "Every alert is actionable and every request can be traced end to end."}'
    "]}"
)


class FakeGateway:
    """Stands in for OpenAIGateway; records every upstream call."""

    def __init__(
        self,
        transcript: str = "hello there",
        reply: str = "  Nice to meet you. Tell me about yourself.  ",
        transcribe_error: Exception | None = None,
        complete_error: Exception | None = None,
        speech: bytes = b"ID3fake-mp3",
        deltas: list[str] | None = None,
    ):
        self.settings = OpenAISettings(api_key="test-key")
        self.transcript = transcript
        self.reply = reply
        self.transcribe_error = transcribe_error
        self.complete_error = complete_error
        self.speech = speech
        self.deltas = list(deltas or [])
        self.transcribe_calls: list[AudioClip] = []
        self.complete_calls: list[dict] = []
        self.speech_calls: list[str] = []
        self.stream_calls: list[list[dict]] = []

    available = True

    def ensure_available(self):
        return self

    @property
    def call_count(self) -> int:
        return len(self.transcribe_calls) + len(self.complete_calls) + len(self.speech_calls) + len(self.stream_calls)

    async def transcribe(self, clip: AudioClip) -> str:
        self.transcribe_calls.append(clip)
        if self.transcribe_error is not None:
            raise self.transcribe_error
        return self.transcript

    async def complete(self, messages, *, model, temperature, max_tokens=None) -> str:
        self.complete_calls.append({
            "messages": [dict(item) for item in messages],
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.complete_error is not None:
            raise self.complete_error
        return self.reply

    async def synthesize_speech(self, text: str) -> bytes:
        self.speech_calls.append(text)
        return self.speech

    async def open_chat_stream(self, messages):
        self.stream_calls.append(list(messages))

        async def _gen():
            for delta in self.deltas:
                yield delta

        return _gen()


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    reset_metrics()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def transcription_error() -> TranscriptionFailed:
    return TranscriptionFailed(details="Invalid file format.", code="invalid_request_error")


@pytest.fixture
def completion_error() -> CompletionFailed:
    return CompletionFailed(details="Rate limit reached", code="rate_limit_exceeded")


@pytest.fixture
def client_factory():
    from fastapi.testclient import TestClient

    from app.dependencies import get_gateway
    from app.main import app

    def _make(gateway, raise_server_exceptions: bool = True) -> TestClient:
        app.dependency_overrides[get_gateway] = lambda: gateway
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    yield _make
    app.dependency_overrides.clear()
