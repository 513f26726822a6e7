"""
Elora Assistant: Disclosure Policy

When may a reply contain the final answer?

    role == student AND effective action == check AND 0 < attempt < 3
        → NO. Hints and the next faulty step only.
    anything else (attempt 0, attempt 3, non-check actions, other roles)
        → yes.

The leak detector is a heuristic. It will miss some leaks and flag some
innocent replies. That's accepted: the pipeline's fallback guarantees the
student never sees a flagged reply, and tests/test_disclosure.py holds the
labeled corpus we regress against.
"""

import re
from typing import Protocol

from elora.config import MAX_ATTEMPT
from elora.tutor.context import Action, Role, TutoringContext


class DisclosurePolicy(Protocol):
    def is_leak(self, text: str) -> bool: ...


def disclosure_prohibited(ctx: TutoringContext) -> bool:
    """True while the student is still working on their own answer."""
    return (
        ctx.role == Role.STUDENT
        and ctx.effective_action == Action.CHECK
        and 0 < ctx.attempt < MAX_ATTEMPT
    )


# ─── Leak Patterns ───────────────────────────────────────────────────────────

FINAL_ANSWER_PHRASES = [
    r"\bthe\s+answer\s+(?:is|would\s+be|will\s+be|should\s+be)\b",
    r"\b(?:final|correct|right)\s+answer\s+(?:is|would\s+be|=)",
    r"\bfinal\s+answer\b",
    r"\bthe\s+(?:result|solution)\s+is\b",
    r"\banswer\s*:",
    r"\bequals\s+[-−]?\d",
    r"\bit\s+should\s+be\s+[-−]?\d",
]

# "= 4", "=-1.5", "= 3/4"
EQUALS_NUMBER = r"=\s*[-−]?\s*\d"

# A bare result line: "4", "x = 3", "2 + 2 = 4", "-1/7"
MAX_BARE_LINE_CHARS = 24
BARE_RESULT_LINE = r"^[\dA-Za-z\s+\-−×÷*/=().,^%]*\d[\dA-Za-z\s+\-−×÷*/=().,^%]*$"

_PHRASE_RE = re.compile("|".join(FINAL_ANSWER_PHRASES), re.IGNORECASE)
_EQUALS_RE = re.compile(EQUALS_NUMBER)
_BARE_LINE_RE = re.compile(BARE_RESULT_LINE)
_WORD_RE = re.compile(r"[A-Za-z]{2,}")


def _is_bare_result_line(line: str) -> bool:
    line = line.strip()
    if not line or len(line) > MAX_BARE_LINE_CHARS:
        return False
    if not _BARE_LINE_RE.match(line):
        return False
    # Single-letter variables are fine ("x = 3"), words are prose ("Step 2")
    return not _WORD_RE.search(line)


class LexicalDisclosurePolicy:
    """Default leak detector: announcement phrases, `= <number>`, bare result lines."""

    def is_leak(self, text: str) -> bool:
        if not text:
            return False
        if _PHRASE_RE.search(text):
            return True
        if _EQUALS_RE.search(text):
            return True
        return any(_is_bare_result_line(line) for line in text.splitlines())
