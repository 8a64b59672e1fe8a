import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from app.dependencies import get_gateway, get_request_id, read_json_object
from app.errors import MissingInput, StreamingFailed
from app.schemas import StreamRequest
from app.services.openai_service import OpenAIGateway
from app.system_metrics import increment_metric
from core.logger import log_event

router = APIRouter()


async def relay_deltas(deltas: AsyncIterator[str], request_id: str) -> AsyncIterator[str]:
    fragments = 0
    try:
        async for delta in deltas:
            fragments += 1
            yield delta
    except StreamingFailed as exc:
        # headers are already sent; the stream just ends early
        increment_metric("streams_failed")
        log_event("chat_stream", "interrupted", request_id, level=logging.ERROR, code=exc.code, details=exc.details, fragments=fragments)
        return
    log_event("chat_stream", "completed", request_id, fragments=fragments)


@router.post("/api/chat/stream")
async def chat_stream(
    request: Request,
    gateway: OpenAIGateway = Depends(get_gateway),
    request_id: str = Depends(get_request_id),
):
    payload = await read_json_object(request)
    try:
        body = StreamRequest.model_validate(payload)
    except ValidationError as exc:
        raise MissingInput("messages must be a non-empty list of {role, content} objects") from exc

    messages = [message.model_dump() for message in body.messages]
    try:
        deltas = await gateway.open_chat_stream(messages)
    except StreamingFailed:
        increment_metric("streams_failed")
        raise

    increment_metric("streams_started")
    log_event("chat_stream", "opened", request_id, messages=len(messages))
    return StreamingResponse(relay_deltas(deltas, request_id), media_type="text/plain")
