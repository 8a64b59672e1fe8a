from typing import Literal

from pydantic import BaseModel, Field


class PrepRequest(BaseModel):
    job: str
    context: str | None = None


class SpeechRequest(BaseModel):
    text: str


class StreamMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class StreamRequest(BaseModel):
    messages: list[StreamMessage] = Field(min_length=1)


class TurnResponse(BaseModel):
    transcript: str
    reply: str


class TranscriptResponse(BaseModel):
    transcript: str


class SessionStartResponse(BaseModel):
    sessionId: str
