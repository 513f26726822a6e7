"""
Elora Assistant: Assistant Router
POST /api/assistant. The only way into the tutoring pipeline.

Request:  {role, country, level, subject, topic, action, message, attempt, imageDataUrl}
Success:  200 {reply}
Failure:  {error} with 400 / 403 / 405 / 413 / 5xx
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from elora.config import MAX_BODY_BYTES
from elora.errors import ValidationError
from elora.routers.auth import resolve_auth_context
from elora.tutor.context import AuthContext
from elora.tutor.llm import get_completion_client
from elora.tutor.pipeline import TutoringPipeline

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["assistant"])


# ─── Response Models ─────────────────────────────────────────────────────────

class AssistantReply(BaseModel):
    reply: str

class ErrorReply(BaseModel):
    error: str


_pipeline: TutoringPipeline = None


def get_pipeline() -> TutoringPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = TutoringPipeline(get_completion_client())
    return _pipeline


async def read_payload(request: Request) -> dict:
    """Parse the JSON body, enforcing the size cap before reading it."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > MAX_BODY_BYTES:
        raise ValidationError("payload_too_large", status_code=413)

    body = await request.body()
    if len(body) > MAX_BODY_BYTES:
        raise ValidationError("payload_too_large", status_code=413)
    if not body:
        return {}
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("invalid_json")
    return payload if isinstance(payload, dict) else {}


# ─── Endpoints ───────────────────────────────────────────────────────────────

@router.post(
    "/assistant",
    response_model=AssistantReply,
    responses={400: {"model": ErrorReply}, 403: {"model": ErrorReply}, 413: {"model": ErrorReply}},
)
async def assistant(
    request: Request,
    auth: AuthContext = Depends(resolve_auth_context),
    pipeline: TutoringPipeline = Depends(get_pipeline),
):
    payload = await read_payload(request)
    result = await pipeline.run(payload, auth)
    return AssistantReply(reply=result.reply)

