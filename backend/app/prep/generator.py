from __future__ import annotations

import json
import logging
import re
from typing import Protocol

from pydantic import ValidationError

from app.errors import CompletionFailed, MissingInput, SchemaMismatch, UpstreamMalformedJSON
from app.prep.schemas import PrepResult
from app.prompts import PREP_SYSTEM_PROMPT, build_prep_user_prompt
from app.system_metrics import increment_metric
from core.logger import log_event

_FENCE_RE = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$", re.IGNORECASE)


class CompletionGateway(Protocol):
    async def complete(
        self,
        messages: list[dict],
        *,
        model: str,
        temperature: float,
        max_tokens: int | None = None,
    ) -> str: ...


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    fenced = _FENCE_RE.match(stripped)
    if fenced:
        return fenced.group(1)
    return stripped


def schema_issues(exc: ValidationError) -> list[dict]:
    return [
        {
            "path": list(err.get("loc", ())),
            "message": str(err.get("msg") or ""),
            "type": str(err.get("type") or ""),
        }
        for err in exc.errors(include_url=False)
    ]


def validate_prep_payload(data: object, raw: str = "") -> PrepResult:
    try:
        return PrepResult.model_validate(data)
    except ValidationError as exc:
        raise SchemaMismatch(raw=raw, issues=schema_issues(exc)) from exc


def parse_prep_response(raw: str) -> PrepResult:
    """Parse-then-validate. Both failure kinds keep the raw text."""
    try:
        data = json.loads(_strip_code_fence(raw))
    except (TypeError, ValueError) as exc:
        raise UpstreamMalformedJSON(raw=raw) from exc
    return validate_prep_payload(data, raw=raw)


def build_prep_messages(job: str, context: str | None = None) -> list[dict]:
    return [
        {"role": "system", "content": PREP_SYSTEM_PROMPT.strip()},
        {"role": "user", "content": build_prep_user_prompt(job, context)},
    ]


class InterviewPrepGenerator:
    def __init__(self, gateway: CompletionGateway, model: str = "gpt-4o-mini", temperature: float = 0.3):
        self.gateway = gateway
        self.model = model
        self.temperature = temperature

    async def generate(self, job: str | None, context: str | None = None, request_id: str = "") -> PrepResult:
        job_text = str(job or "").strip()
        if not job_text:
            raise MissingInput("Missing job description")

        context_text = str(context or "").strip() or None
        increment_metric("prep_requests_total")
        log_event("prep", "generation_started", request_id, job=job_text, context=context_text or "")

        try:
            raw = await self.gateway.complete(
                build_prep_messages(job_text, context_text),
                model=self.model,
                temperature=self.temperature,
            )
        except CompletionFailed as exc:
            log_event("prep", "completion_failed", request_id, level=logging.ERROR, code=exc.code, details=exc.details)
            raise

        try:
            result = parse_prep_response(raw)
        except UpstreamMalformedJSON:
            increment_metric("prep_malformed_json")
            log_event("prep", "malformed_json", request_id, level=logging.ERROR, raw=raw)
            raise
        except SchemaMismatch as exc:
            increment_metric("prep_schema_mismatch")
            log_event("prep", "schema_mismatch", request_id, level=logging.ERROR, raw=raw, issues=len(exc.issues))
            raise

        log_event("prep", "generated", request_id, questions=len(result.questions))
        return result
