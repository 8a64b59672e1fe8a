# fastapi dependency injection
# one gateway per process, handed to the turn processor and prep generator

import logging

from fastapi import Depends, Request

from app.conversation.processor import ConversationTurnProcessor
from app.prep.generator import InterviewPrepGenerator
from app.services.openai_service import OpenAIGateway
from core.config import load_openai_settings

logger = logging.getLogger("app.dependencies")

_gateway: OpenAIGateway | None = None


def build_gateway() -> OpenAIGateway:
    settings = load_openai_settings()
    gateway = OpenAIGateway(settings)
    if not gateway.available:
        logger.warning("OPENAI_API_KEY is not set; AI endpoints will answer 503 until it is configured")
    return gateway


def get_gateway() -> OpenAIGateway:
    global _gateway
    if _gateway is None:
        _gateway = build_gateway()
    return _gateway


def get_turn_processor(gateway: OpenAIGateway = Depends(get_gateway)) -> ConversationTurnProcessor:
    settings = gateway.settings
    return ConversationTurnProcessor(
        gateway,
        model=settings.conversation_model,
        temperature=settings.conversation_temperature,
        max_tokens=settings.conversation_max_tokens,
    )


def get_prep_generator(gateway: OpenAIGateway = Depends(get_gateway)) -> InterviewPrepGenerator:
    settings = gateway.settings
    return InterviewPrepGenerator(gateway, model=settings.prep_model, temperature=settings.prep_temperature)


def get_request_id(request: Request) -> str:
    return str(getattr(request.state, "request_id", "") or "")


async def read_json_object(request: Request) -> dict:
    """Request body as a dict; anything unparsable or non-object becomes {}."""
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
