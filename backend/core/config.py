import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[1]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=False)


def _env_flag(name: str, default: str) -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


SERVICE_NAME = "screenme-interview"
LOG_LEVEL = str(os.getenv("LOG_LEVEL") or "INFO").strip().upper()

RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", "true")
RATE_LIMIT_WINDOW_SEC = max(1, int(os.getenv("RATE_LIMIT_WINDOW_SEC", "60")))
RATE_LIMIT_MAX_REQUESTS = max(1, int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "60")))


@dataclass(frozen=True)
class OpenAISettings:
    api_key: str
    transcription_model: str = "whisper-1"
    conversation_model: str = "gpt-4o-mini"
    prep_model: str = "gpt-4o-mini"
    stream_model: str = "gpt-4o-mini"
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"
    conversation_temperature: float = 0.75
    conversation_max_tokens: int = 100
    prep_temperature: float = 0.3
    timeout_sec: float = 30.0
    retries: int = 0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


def load_openai_settings() -> OpenAISettings:
    # read at call time so the key can be injected after import
    return OpenAISettings(
        api_key=str(os.getenv("OPENAI_API_KEY") or "").strip(),
        transcription_model=str(os.getenv("TRANSCRIPTION_MODEL") or "whisper-1").strip(),
        conversation_model=str(os.getenv("CONVERSATION_MODEL") or "gpt-4o-mini").strip(),
        prep_model=str(os.getenv("PREP_MODEL") or "gpt-4o-mini").strip(),
        stream_model=str(os.getenv("STREAM_MODEL") or "gpt-4o-mini").strip(),
        tts_model=str(os.getenv("TTS_MODEL") or "tts-1").strip(),
        tts_voice=str(os.getenv("TTS_VOICE") or "alloy").strip(),
        conversation_temperature=float(os.getenv("CONVERSATION_TEMPERATURE", "0.75")),
        conversation_max_tokens=max(1, int(os.getenv("CONVERSATION_MAX_TOKENS", "100"))),
        prep_temperature=float(os.getenv("PREP_TEMPERATURE", "0.3")),
        timeout_sec=max(1.0, float(os.getenv("UPSTREAM_TIMEOUT_SEC", "30"))),
        retries=max(0, int(os.getenv("UPSTREAM_RETRIES", "0"))),
    )


def get_allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    return [item.strip() for item in raw.split(",") if item.strip()]
