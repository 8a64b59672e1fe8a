import logging
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from pydantic import ValidationError

from app.conversation.models import AudioClip
from app.dependencies import get_gateway, get_prep_generator, get_request_id, read_json_object
from app.errors import EmptyAudio, MissingInput, TranscriptionFailed
from app.prep.generator import InterviewPrepGenerator
from app.prep.schemas import PrepResult
from app.schemas import PrepRequest, SessionStartResponse, SpeechRequest, TranscriptResponse
from app.services.openai_service import OpenAIGateway
from app.system_metrics import increment_metric
from core.logger import log_event

router = APIRouter(prefix="/api/interviewPrep")


@router.post("", response_model=PrepResult)
async def generate_interview_prep(
    request: Request,
    generator: InterviewPrepGenerator = Depends(get_prep_generator),
    request_id: str = Depends(get_request_id),
):
    payload = await read_json_object(request)
    try:
        body = PrepRequest.model_validate(payload)
    except ValidationError as exc:
        fields = {str(err["loc"][0]) for err in exc.errors(include_url=False) if err.get("loc")}
        if "job" in fields:
            raise MissingInput("Missing job description") from exc
        raise MissingInput("Context must be a string") from exc

    result = await generator.generate(body.job, body.context, request_id=request_id)
    return result.model_dump()


@router.post("/start", response_model=SessionStartResponse)
async def start_session():
    return {"sessionId": str(uuid.uuid4())}


@router.post("/audio", response_model=TranscriptResponse)
async def transcribe_only(
    request: Request,
    gateway: OpenAIGateway = Depends(get_gateway),
    request_id: str = Depends(get_request_id),
):
    data = await request.body()
    if not data:
        raise EmptyAudio()

    clip = AudioClip(
        data=data,
        filename="audio.webm",
        content_type=str(request.headers.get("content-type") or "audio/webm"),
    )
    increment_metric("transcriptions_total")
    try:
        transcript = await gateway.transcribe(clip)
    except TranscriptionFailed as exc:
        increment_metric("transcription_failures")
        log_event("transcription", "failed", request_id, level=logging.ERROR, code=exc.code, details=exc.details)
        raise TranscriptionFailed("Whisper transcription failed", details=exc.details, code=exc.code) from exc

    log_event("transcription", "transcribed", request_id, audio_bytes=clip.size, transcript=transcript)
    return {"transcript": transcript}


@router.post("/tts")
async def text_to_speech(
    request: Request,
    gateway: OpenAIGateway = Depends(get_gateway),
    request_id: str = Depends(get_request_id),
):
    payload = await read_json_object(request)
    try:
        body = SpeechRequest.model_validate(payload)
    except ValidationError as exc:
        raise MissingInput("Missing text") from exc
    if not body.text.strip():
        raise MissingInput("Missing text")

    audio = await gateway.synthesize_speech(body.text)
    increment_metric("speech_syntheses_total")
    log_event("tts", "synthesized", request_id, text=body.text, audio_bytes=len(audio))
    return Response(content=audio, media_type="audio/mpeg")
