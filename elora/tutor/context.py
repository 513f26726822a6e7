"""
Elora Assistant: Request Context

TutoringRequest is what the normalizer produces from a raw payload.
TutoringContext is what every later stage reads. It is frozen: stages
never write to it, so one request can't leak state into another.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    STUDENT = "student"
    EDUCATOR = "educator"
    PARENT = "parent"


class Action(str, Enum):
    EXPLAIN = "explain"
    CHECK = "check"
    LESSON = "lesson"
    WORKSHEET = "worksheet"
    ASSESSMENT = "assessment"
    SLIDES = "slides"
    CUSTOM = "custom"


# Generation modes that need a verified, licensed teacher
PRIVILEGED_ACTIONS = frozenset({
    Action.LESSON, Action.WORKSHEET, Action.ASSESSMENT, Action.SLIDES,
})


@dataclass(frozen=True)
class AuthContext:
    """What the verification service told us about the caller."""
    verified: bool = False
    email: str = ""
    teacher_licensed: bool = False


@dataclass(frozen=True)
class TutoringRequest:
    role: Role
    country: str
    level: str
    subject: str
    topic: str
    requested_action: Action
    message: str
    attempt: int
    image_data_url: Optional[str] = None


@dataclass(frozen=True)
class TutoringContext:
    role: Role
    country: str
    level: str
    subject: str
    topic: str
    requested_action: Action
    effective_action: Action
    message: str
    attempt: int
    image_data_url: Optional[str]
    has_image: bool
    auth: AuthContext

    @property
    def action_overridden(self) -> bool:
        return self.effective_action != self.requested_action


def build_context(
    request: TutoringRequest,
    effective_action: Action,
    auth: AuthContext,
) -> TutoringContext:
    """Freeze a normalized request plus the inferred action into a context."""
    return TutoringContext(
        role=request.role,
        country=request.country,
        level=request.level,
        subject=request.subject,
        topic=request.topic,
        requested_action=request.requested_action,
        effective_action=effective_action,
        message=request.message,
        attempt=request.attempt,
        image_data_url=request.image_data_url,
        has_image=request.image_data_url is not None,
        auth=auth,
    )
