from __future__ import annotations

import logging
from typing import Protocol

from app.conversation.models import (
    AudioClip,
    TurnResult,
    append_user_turn,
    parse_history,
    to_chat_messages,
)
from app.errors import ClientInputError, CompletionFailed, EmptyAudio, MissingAudio, TranscriptionFailed
from app.system_metrics import increment_metric
from core.logger import log_event

logger = logging.getLogger("app.conversation.processor")


class TurnGateway(Protocol):
    async def transcribe(self, clip: AudioClip) -> str: ...

    async def complete(
        self,
        messages: list[dict],
        *,
        model: str,
        temperature: float,
        max_tokens: int | None = None,
    ) -> str: ...


class ConversationTurnProcessor:
    """
    One spoken interview turn: transcribe -> append user turn -> reply.

    Stateless between requests. The caller owns the conversation and resends
    it every turn; the working copy built here dies with the request.
    """

    def __init__(
        self,
        gateway: TurnGateway,
        model: str = "gpt-4o-mini",
        temperature: float = 0.75,
        max_tokens: int = 100,
    ):
        self.gateway = gateway
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @staticmethod
    def validate_audio(audio: AudioClip | None) -> AudioClip:
        if audio is None:
            raise MissingAudio()
        if audio.size == 0:
            raise EmptyAudio()
        return audio

    async def process(self, audio: AudioClip | None, history_raw: str | None, request_id: str = "") -> TurnResult:
        increment_metric("turns_total")

        # -------- input (no upstream calls past this point on failure) --------
        try:
            clip = self.validate_audio(audio)
            history = parse_history(history_raw)
        except ClientInputError as exc:
            increment_metric("turns_rejected_input")
            log_event("conversation", "input_rejected", request_id, level=logging.WARNING, code=exc.code)
            raise

        log_event(
            "conversation",
            "turn_received",
            request_id,
            audio_bytes=clip.size,
            content_type=clip.content_type,
            history_turns=len(history),
        )

        # -------- transcription --------
        try:
            transcript = await self.gateway.transcribe(clip)
        except TranscriptionFailed as exc:
            increment_metric("transcription_failures")
            log_event("conversation", "transcription_failed", request_id, level=logging.ERROR, code=exc.code, details=exc.details)
            raise

        if not transcript.strip():
            increment_metric("empty_transcripts")
            log_event("conversation", "empty_transcript", request_id, level=logging.WARNING)
        else:
            log_event("conversation", "transcribed", request_id, transcript=transcript)

        # -------- user turn + reply --------
        updated = append_user_turn(history, transcript)

        try:
            raw_reply = await self.gateway.complete(
                to_chat_messages(updated),
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except CompletionFailed as exc:
            increment_metric("completion_failures")
            log_event("conversation", "completion_failed", request_id, level=logging.ERROR, code=exc.code, details=exc.details)
            raise exc.with_transcript(transcript) from exc

        reply = raw_reply.strip()
        if not reply:
            increment_metric("empty_replies")
            log_event("conversation", "empty_reply", request_id, level=logging.WARNING)
        else:
            log_event("conversation", "replied", request_id, reply=reply)

        increment_metric("turns_succeeded")
        return TurnResult(transcript=transcript, reply=reply)
