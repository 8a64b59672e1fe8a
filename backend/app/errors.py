from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base for every failure the API reports with a structured JSON body."""

    status_code = 500
    code = "PROCESSING_ERROR"
    default_message = "Failed to process your request."

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = str(message or self.default_message)
        if code:
            self.code = code
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code}


# ---------- client input (400, no upstream call made) ----------

class ClientInputError(ServiceError):
    status_code = 400
    code = "INVALID_INPUT"


class MissingAudio(ClientInputError):
    code = "MISSING_AUDIO"
    default_message = "Missing audio blob"


class EmptyAudio(ClientInputError):
    code = "EMPTY_AUDIO"
    default_message = "Received empty audio file."


class MissingHistory(ClientInputError):
    code = "MISSING_HISTORY"
    default_message = "Missing chat history"


class InvalidHistoryFormat(ClientInputError):
    code = "INVALID_HISTORY_FORMAT"
    default_message = "Invalid chat history format"


class MissingInput(ClientInputError):
    code = "MISSING_INPUT"
    default_message = "Missing required input"


# ---------- upstream call failures (500) ----------

class UpstreamServiceError(ServiceError):
    status_code = 500
    code = "UPSTREAM_ERROR"
    default_message = "AI service request failed."

    def __init__(self, message: str | None = None, details: str | None = None, code: str | None = None):
        super().__init__(message, code=code)
        self.details = str(details or "Unknown upstream error")

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details, "code": self.code}


class TranscriptionFailed(UpstreamServiceError):
    code = "TRANSCRIPTION_FAILED"
    default_message = "Failed to transcribe audio."


class CompletionFailed(UpstreamServiceError):
    code = "COMPLETION_FAILED"
    default_message = "Failed to get AI reply."

    def __init__(
        self,
        message: str | None = None,
        details: str | None = None,
        code: str | None = None,
        transcript: str | None = None,
    ):
        super().__init__(message, details=details, code=code)
        self.transcript = transcript

    def with_transcript(self, transcript: str) -> "CompletionFailed":
        return CompletionFailed(self.message, details=self.details, code=self.code, transcript=transcript)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.transcript is not None:
            payload["transcript"] = self.transcript
        return payload


class SynthesisFailed(UpstreamServiceError):
    code = "SYNTHESIS_FAILED"
    default_message = "TTS failed"


class StreamingFailed(UpstreamServiceError):
    code = "STREAMING_FAILED"
    default_message = "Streaming completion failed."


# ---------- upstream answered, but not with what we asked for (500) ----------

class UpstreamMalformedResponse(ServiceError):
    status_code = 500
    code = "INVALID_RESPONSE_FORMAT"

    def __init__(self, message: str | None = None, raw: str = ""):
        super().__init__(message)
        self.raw = str(raw or "")

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, "raw": self.raw}


class UpstreamMalformedJSON(UpstreamMalformedResponse):
    code = "MALFORMED_JSON"
    default_message = "AI returned invalid JSON"


class SchemaMismatch(UpstreamMalformedResponse):
    code = "SCHEMA_MISMATCH"
    default_message = "Unexpected response format"

    def __init__(self, message: str | None = None, raw: str = "", issues: list[dict] | None = None):
        super().__init__(message, raw=raw)
        self.issues = list(issues or [])

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, "details": self.issues, "raw": self.raw}


# ---------- configuration ----------

class ServiceUnavailable(ServiceError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"
    default_message = "AI service is not configured. Set OPENAI_API_KEY and restart the server."


class UnexpectedInternalError(ServiceError):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "An unexpected server error occurred."

    def __init__(self, details: str | None = None):
        super().__init__()
        self.details = str(details or "")

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, "details": self.details}
