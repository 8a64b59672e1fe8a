from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile

from app.conversation.models import AudioClip
from app.conversation.processor import ConversationTurnProcessor
from app.dependencies import get_request_id, get_turn_processor
from app.schemas import TurnResponse

router = APIRouter()


async def read_audio_entry(entry: object) -> AudioClip | None:
    if not isinstance(entry, UploadFile):
        return None
    data = await entry.read()
    return AudioClip(
        data=data,
        filename=str(entry.filename or "speech.webm"),
        content_type=str(entry.content_type or "audio/webm"),
    )


@router.post("/api/interviewConversation", response_model=TurnResponse)
async def interview_conversation(
    request: Request,
    processor: ConversationTurnProcessor = Depends(get_turn_processor),
    request_id: str = Depends(get_request_id),
):
    async with request.form() as form:
        clip = await read_audio_entry(form.get("audio"))
        history_entry = form.get("history")

    history_raw = history_entry if isinstance(history_entry, str) else None
    result = await processor.process(clip, history_raw, request_id=request_id)
    return result.to_dict()
