import asyncio
import inspect
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable

import httpx
from openai import AsyncOpenAI

from app.conversation.models import AudioClip
from app.errors import (
    CompletionFailed,
    ServiceUnavailable,
    StreamingFailed,
    SynthesisFailed,
    TranscriptionFailed,
    UpstreamServiceError,
)
from app.system_metrics import observe_upstream_latency_ms
from core.config import OpenAISettings

logger = logging.getLogger("app.services.openai_service")

DeltaCallback = Callable[[str], Any]


def _upstream_code(exc: BaseException, default: str) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT"
    code = getattr(exc, "code", None)
    if code:
        return str(code)
    return default


def _upstream_details(exc: BaseException, timeout_sec: float) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"Upstream call timed out after {timeout_sec:.1f}s"
    return str(exc) or exc.__class__.__name__


class OpenAIGateway:
    """
    The only door to the hosted AI platform.

    Built once per process from OpenAISettings. When no API key is configured
    the client stays None and every call raises ServiceUnavailable before any
    network traffic happens.
    """

    def __init__(
        self,
        settings: OpenAISettings,
        client: Any | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        if client is not None:
            self.client = client
        elif settings.configured:
            # retries belong to _call_with_retry so every attempt is logged
            self.client = AsyncOpenAI(
                api_key=settings.api_key,
                max_retries=0,
                timeout=settings.timeout_sec,
                http_client=http_client,
            )
        else:
            self.client = None

    @property
    def available(self) -> bool:
        return self.client is not None

    def ensure_available(self) -> Any:
        if self.client is None:
            raise ServiceUnavailable()
        return self.client

    async def _call_with_retry(
        self,
        stage: str,
        make_call: Callable[[], Awaitable[Any]],
        error_cls: type[UpstreamServiceError],
    ) -> Any:
        timeout_sec = self.settings.timeout_sec
        retries = self.settings.retries
        last_error: Exception | None = None

        for attempt in range(retries + 1):
            started = time.perf_counter()
            try:
                result = await asyncio.wait_for(make_call(), timeout=timeout_sec)
                observe_upstream_latency_ms(stage, (time.perf_counter() - started) * 1000.0)
                return result
            except asyncio.TimeoutError as exc:
                last_error = exc
                logger.warning("%s timeout | attempt=%s timeout_sec=%s", stage, attempt + 1, timeout_sec)
            except Exception as exc:
                last_error = exc
                logger.warning("%s failure | attempt=%s err=%s", stage, attempt + 1, exc)

            if attempt < retries:
                await asyncio.sleep(0.4 * (attempt + 1))

        raise error_cls(
            details=_upstream_details(last_error, timeout_sec),
            code=_upstream_code(last_error, error_cls.code),
        ) from last_error

    # ================= SPEECH TO TEXT =================

    async def transcribe(self, clip: AudioClip) -> str:
        client = self.ensure_available()
        response = await self._call_with_retry(
            "transcription",
            lambda: client.audio.transcriptions.create(
                model=self.settings.transcription_model,
                file=(clip.filename, clip.data, clip.content_type),
            ),
            TranscriptionFailed,
        )
        return str(getattr(response, "text", "") or "")

    # ================= BLOCKING CHAT =================

    async def complete(
        self,
        messages: list[dict],
        *,
        model: str,
        temperature: float,
        max_tokens: int | None = None,
    ) -> str:
        client = self.ensure_available()
        params: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        response = await self._call_with_retry(
            "completion",
            lambda: client.chat.completions.create(**params),
            CompletionFailed,
        )
        if not response.choices:
            return ""
        return str(response.choices[0].message.content or "")

    # ================= STREAMING CHAT =================

    async def open_chat_stream(self, messages: list[dict]) -> AsyncIterator[str]:
        """Opens the upstream stream now; fragments are pulled from the returned iterator."""
        client = self.ensure_available()
        stream = await self._call_with_retry(
            "streaming",
            lambda: client.chat.completions.create(
                model=self.settings.stream_model,
                messages=messages,
                stream=True,
            ),
            StreamingFailed,
        )
        return self._iter_deltas(stream)

    async def _iter_deltas(self, stream: Any) -> AsyncIterator[str]:
        chunks = stream.__aiter__()
        try:
            while True:
                try:
                    chunk = await asyncio.wait_for(chunks.__anext__(), timeout=self.settings.timeout_sec)
                except StopAsyncIteration:
                    break
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except Exception as exc:
            logger.warning("streaming interrupted | err=%s", exc)
            raise StreamingFailed(
                details=_upstream_details(exc, self.settings.timeout_sec),
                code=_upstream_code(exc, StreamingFailed.code),
            ) from exc
        finally:
            await stream.close()

    async def stream_chat(self, messages: list[dict], on_delta: DeltaCallback) -> None:
        deltas = await self.open_chat_stream(messages)
        async for delta in deltas:
            outcome = on_delta(delta)
            if inspect.isawaitable(outcome):
                await outcome

    # ================= TEXT TO SPEECH =================

    async def synthesize_speech(self, text: str) -> bytes:
        client = self.ensure_available()
        response = await self._call_with_retry(
            "synthesis",
            lambda: client.audio.speech.create(
                model=self.settings.tts_model,
                voice=self.settings.tts_voice,
                input=text,
            ),
            SynthesisFailed,
        )
        return bytes(response.content)
