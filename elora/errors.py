"""
Elora Assistant: Error Taxonomy

ValidationError     missing or malformed input, resolved locally
AuthorizationError  role / verification / license gate
UpstreamError       model provider failure or timeout
InternalError       anything unexpected, reported generically

Validation and authorization errors are raised before any model call.
Every error carries a caller-safe message; nothing else leaves the service.
"""

from typing import Optional


GENERIC_INTERNAL_MESSAGE = "Something went wrong inside Elora Assistant."

SAFE_MESSAGES = {
    "missing_message": "Please type a message or attach an image.",
    "payload_too_large": "Request is too large. Attach a smaller image.",
    "invalid_json": "Request body must be valid JSON.",
    "verification_required": "Email verification required.",
    "teacher_license_required": "Teacher license required for this action.",
    "invalid_request": "Request body is not valid.",
    "method_not_allowed": "Method not allowed",
    "not_found": "Not found",
    "missing_code": "Please enter your teacher invite code.",
    "invalid_invite": "That invite code is not valid.",
    "invite_not_configured": "Teacher invites are not available right now.",
    "teacher_not_configured": "Teacher access is not configured on this server.",
    "backend_unreachable": "The verification service could not be reached.",
}


class TutorError(Exception):
    """Base class. `code` is machine-readable, `message` is safe to show."""

    status_code = 500

    def __init__(self, code: str, message: Optional[str] = None, status_code: Optional[int] = None):
        self.code = code
        self.message = message or SAFE_MESSAGES.get(code, GENERIC_INTERNAL_MESSAGE)
        if status_code is not None:
            self.status_code = status_code
        super().__init__(code)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(TutorError):
    status_code = 400


class AuthorizationError(TutorError):
    status_code = 403


class UpstreamError(TutorError):
    status_code = 502


class InternalError(TutorError):
    status_code = 500

    def __init__(self, code: str = "internal_error"):
        super().__init__(code, GENERIC_INTERNAL_MESSAGE)


def scrub_secret(text: str, secret: str) -> str:
    """Remove a secret value from provider text before it reaches a caller."""
    if not text:
        return ""
    if secret:
        text = text.replace(secret, "[redacted]")
    return text
