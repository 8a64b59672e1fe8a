from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, TypeAdapter, ValidationError

from app.errors import InvalidHistoryFormat, MissingHistory

logger = logging.getLogger("app.conversation.models")


class Speaker(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# client wire tag -> speaker; no fallback on purpose
_WIRE_TO_SPEAKER: dict[str, Speaker] = {
    "user": Speaker.USER,
    "ai": Speaker.ASSISTANT,
}

# speaker -> chat completion role
_SPEAKER_TO_ROLE: dict[Speaker, str] = {
    Speaker.USER: "user",
    Speaker.ASSISTANT: "assistant",
}


def speaker_from_wire(who: str) -> Speaker:
    try:
        return _WIRE_TO_SPEAKER[who]
    except KeyError:
        raise ValueError(f"Unrecognized speaker tag: {who!r}") from None


def chat_role(speaker: Speaker) -> str:
    return _SPEAKER_TO_ROLE[speaker]


@dataclass(frozen=True)
class ConversationTurn:
    id: int | None
    speaker: Speaker
    text: str

    def to_message(self) -> dict:
        return {"role": chat_role(self.speaker), "content": self.text}


@dataclass(frozen=True)
class AudioClip:
    data: bytes
    filename: str = "speech.webm"
    content_type: str = "audio/webm"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class TurnResult:
    transcript: str
    reply: str

    def to_dict(self) -> dict:
        return {"transcript": self.transcript, "reply": self.reply}


class HistoryRecord(BaseModel):
    """One chat line exactly as the web client sends it."""

    id: int | None = None
    who: str
    text: str


_HISTORY_ADAPTER = TypeAdapter(list[HistoryRecord])


def parse_history(raw: str | None) -> tuple[ConversationTurn, ...]:
    if raw is None:
        raise MissingHistory()

    try:
        records = _HISTORY_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        logger.warning("history rejected | %s", describe_validation_error(exc))
        raise InvalidHistoryFormat() from exc

    try:
        return tuple(
            ConversationTurn(id=record.id, speaker=speaker_from_wire(record.who), text=record.text)
            for record in records
        )
    except ValueError as exc:
        logger.warning("history rejected | %s", exc)
        raise InvalidHistoryFormat() from exc


def describe_validation_error(exc: ValidationError) -> str:
    first = (exc.errors(include_url=False) or [{}])[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = str(first.get("msg") or "invalid value")
    return f"{location}: {message}" if location else message


def next_turn_id(history: tuple[ConversationTurn, ...], now_ms: int | None = None) -> int:
    clock = int(now_ms if now_ms is not None else time.time() * 1000)
    known = [turn.id for turn in history if turn.id is not None]
    if not known:
        return clock
    return max(clock, max(known) + 1)


def append_user_turn(
    history: tuple[ConversationTurn, ...],
    text: str,
    now_ms: int | None = None,
) -> tuple[ConversationTurn, ...]:
    turn = ConversationTurn(id=next_turn_id(history, now_ms), speaker=Speaker.USER, text=text)
    return history + (turn,)


def to_chat_messages(history: tuple[ConversationTurn, ...]) -> list[dict]:
    return [turn.to_message() for turn in history]
