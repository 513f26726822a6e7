"""
Elora Assistant: Verification & Teacher License
Who is calling? Resolved per request from two cookies:

    elora_session   opaque session token, checked against the verification
                    service (email verified? teacher role?)
    elora_teacher   signed JWT granting the teacher license

Anything that goes wrong while asking the verification service means
"not verified". It never fails the request on its own.

The teacher cookie is issued by POST /api/teacher/activate once a verified
caller redeems an invite code with the verification service, and removed
by POST /api/teacher/clear.
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

import httpx
import jwt
from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from elora.config import (
    VERIFICATION_BASE_URL, VERIFICATION_TIMEOUT_SECONDS, SESSION_COOKIE_NAME,
    TEACHER_COOKIE_NAME, TEACHER_COOKIE_SECRET, TEACHER_TOKEN_ALGORITHM,
    TEACHER_TOKEN_TTL_DAYS, COOKIE_SECURE,
)
from elora.errors import (
    SAFE_MESSAGES, AuthorizationError, TutorError, UpstreamError, ValidationError,
)
from elora.tutor.context import AuthContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/verification", tags=["verification"])
teacher_router = APIRouter(prefix="/api/teacher", tags=["teacher"])

# Backend error codes → the ones the chat UI knows
REDEEM_ERROR_CODES = {
    "invalid_code": "invalid_invite",
    "teacher_invites_not_configured": "invite_not_configured",
}
REDEEM_FAILED_MESSAGE = "Could not redeem the invite code."


# ─── Request Models ──────────────────────────────────────────────────────────

class ActivateRequest(BaseModel):
    code: str = ""


# ─── Session Token ───────────────────────────────────────────────────────────

def get_session_token(request: Request) -> str:
    """Session cookie first, then an Authorization: Bearer header."""
    token = request.cookies.get(SESSION_COOKIE_NAME, "")
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:].strip()
    return ""


# ─── Verification Service ────────────────────────────────────────────────────

async def fetch_verification_status(
    token: str,
    base_url: str = VERIFICATION_BASE_URL,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AuthContext:
    """Ask the verification service about a session token."""
    if not token:
        return AuthContext()

    try:
        async with httpx.AsyncClient(timeout=VERIFICATION_TIMEOUT_SECONDS, transport=transport) as client:
            response = await client.get(
                f"{base_url}/api/verification/status",
                headers={"Authorization": f"Bearer {token}"},
            )
    except httpx.HTTPError as e:
        logger.warning(f"Verification service unreachable: {type(e).__name__}")
        return AuthContext()

    if response.status_code < 200 or response.status_code >= 300:
        logger.info(f"Verification service returned {response.status_code}")
        return AuthContext()

    try:
        data = response.json()
    except ValueError:
        logger.warning("Verification service returned invalid JSON")
        return AuthContext()
    if not isinstance(data, dict):
        return AuthContext()

    role = str(data.get("role") or "").lower()
    return AuthContext(
        verified=bool(data.get("verified")),
        email=str(data.get("email") or ""),
        teacher_licensed=bool(data.get("teacher")) or role == "teacher",
    )


# ─── Teacher License Token ───────────────────────────────────────────────────

def create_teacher_token(
    email: str,
    secret: Optional[str] = None,
    ttl_days: int = TEACHER_TOKEN_TTL_DAYS,
) -> str:
    secret = TEACHER_COOKIE_SECRET if secret is None else secret
    now = datetime.now(timezone.utc)
    payload = {
        "teacher": True,
        "email": email,
        "iat": now,
        "exp": now + timedelta(days=ttl_days),
    }
    return jwt.encode(payload, secret, algorithm=TEACHER_TOKEN_ALGORITHM)


def verify_teacher_token(token: str, secret: Optional[str] = None) -> Optional[dict]:
    """Decoded payload if the token is valid, unexpired and grants the license."""
    secret = TEACHER_COOKIE_SECRET if secret is None else secret
    if not token or not secret:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[TEACHER_TOKEN_ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    if not payload.get("teacher"):
        return None
    return payload


# ─── Invite Redemption ───────────────────────────────────────────────────────

async def redeem_invite_code(
    token: str,
    code: str,
    base_url: str = VERIFICATION_BASE_URL,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """
    Redeem a teacher invite code with the verification service.
    Returns on success, raises a TutorError carrying a UI error code otherwise.
    """
    try:
        async with httpx.AsyncClient(timeout=VERIFICATION_TIMEOUT_SECONDS, transport=transport) as client:
            response = await client.post(
                f"{base_url}/api/teacher/redeem",
                json={"code": code},
                headers={"Authorization": f"Bearer {token}"},
            )
    except httpx.HTTPError as e:
        logger.warning(f"Invite redemption failed: {type(e).__name__}")
        raise UpstreamError("backend_unreachable")

    try:
        data = response.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        data = {}

    if response.is_success and data.get("ok"):
        return

    backend_code = str(data.get("error") or "invalid_invite")
    code = REDEEM_ERROR_CODES.get(backend_code, backend_code)
    message = SAFE_MESSAGES.get(code, REDEEM_FAILED_MESSAGE)
    status_code = response.status_code if response.status_code >= 400 else 400
    logger.info(f"Invite redemption rejected: {response.status_code} {backend_code}")
    if status_code >= 500:
        raise UpstreamError(code, message, status_code=status_code)
    raise ValidationError(code, message, status_code=status_code)


# ─── FastAPI Dependency ──────────────────────────────────────────────────────

async def resolve_auth_context(request: Request) -> AuthContext:
    """Verification status from the service, plus the teacher cookie if present."""
    status = await fetch_verification_status(get_session_token(request))

    teacher_cookie = verify_teacher_token(request.cookies.get(TEACHER_COOKIE_NAME, ""))
    if teacher_cookie and not status.teacher_licensed:
        status = AuthContext(
            verified=status.verified,
            email=status.email,
            teacher_licensed=True,
        )
    return status


# ─── Endpoints ───────────────────────────────────────────────────────────────

@router.get("/status")
async def verification_status(request: Request):
    """Status as the chat UI sees it."""
    status = await resolve_auth_context(request)
    return {
        "ok": True,
        "verified": status.verified,
        "email": status.email,
        "role": "teacher" if status.teacher_licensed else ("regular" if status.verified else "guest"),
        "teacher": status.teacher_licensed,
    }


@teacher_router.post("/activate")
async def activate_teacher(request: Request, response: Response, req: Optional[ActivateRequest] = None):
    """Verified caller + valid invite code → signed teacher cookie."""
    token = get_session_token(request)
    status = await fetch_verification_status(token)
    if not status.verified:
        raise AuthorizationError("verification_required")

    code = (req.code if req else "").strip()
    if not code:
        raise ValidationError("missing_code")

    if not TEACHER_COOKIE_SECRET:
        logger.error("TEACHER_COOKIE_SECRET not set: teacher cookies cannot be issued")
        raise TutorError("teacher_not_configured", status_code=503)

    await redeem_invite_code(token, code)

    response.set_cookie(
        TEACHER_COOKIE_NAME,
        create_teacher_token(status.email, secret=TEACHER_COOKIE_SECRET),
        max_age=TEACHER_TOKEN_TTL_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        samesite="lax",
        secure=COOKIE_SECURE,
    )
    logger.info("Teacher license activated")
    return {"ok": True, "teacher": True}


@teacher_router.post("/clear")
async def clear_teacher(response: Response):
    response.delete_cookie(
        TEACHER_COOKIE_NAME, path="/", httponly=True, samesite="lax", secure=COOKIE_SECURE,
    )
    return {"ok": True}
