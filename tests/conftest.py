"""
Shared fakes for the tutoring pipeline tests.
No test talks to a real model provider or verification service.
"""

import pytest

from elora.tutor.context import Action, AuthContext, Role, TutoringRequest, build_context
from elora.tutor.llm import CompletionResult


class FakeCompletionClient:
    """Replays scripted results in order and records every prompt it was sent.

    Script entries: a string (success), a CompletionResult, or an Exception to raise.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls = []

    async def complete(self, messages):
        self.calls.append(messages)
        if not self.script:
            raise AssertionError("FakeCompletionClient called more times than scripted")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, CompletionResult):
            return item
        return CompletionResult(ok=True, status_code=200, text=item)


def fail(status_code=500, detail="Upstream exploded"):
    return CompletionResult.failure(status_code, detail)


@pytest.fixture
def fake_client():
    return FakeCompletionClient


@pytest.fixture
def make_ctx():
    def _make(
        role=Role.STUDENT,
        action=Action.EXPLAIN,
        effective=None,
        message="What is 5/4 as a decimal?",
        attempt=0,
        image=None,
        verified=False,
        licensed=False,
        **fields,
    ):
        request = TutoringRequest(
            role=role,
            country=fields.get("country", "Singapore"),
            level=fields.get("level", "Primary 5"),
            subject=fields.get("subject", "Mathematics"),
            topic=fields.get("topic", "Fractions"),
            requested_action=action,
            message=message,
            attempt=attempt,
            image_data_url=image,
        )
        auth = AuthContext(verified=verified, email="", teacher_licensed=licensed)
        return build_context(request, effective or action, auth)
    return _make
