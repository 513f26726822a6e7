"""
Elora Assistant: Intent Classifier

Decides the EFFECTIVE action for a message. Pattern-based, no LLM call.

One rule: if the learner is asking us to verify an answer, the effective
action is "check", whatever they selected in the UI.
"explain fractions, btw is 2+2=5 right?" is a check request.
The override only goes one way. A declared "check" is never downgraded.
"""

import logging
import re

from elora.tutor.context import Action

logger = logging.getLogger(__name__)


# ─── Answer-Verification Phrases ─────────────────────────────────────────────

CHECK_PHRASES = [
    r"check\s+(my|this|the)\s+(answer|answers|work|solution|working)",
    r"mark\s+my\s+(answer|work)",
    r"is\s+(this|that|it|my\s+answer|my\s+solution|my\s+working)\s+(correct|right)",
    r"is\s+my\s+answer\s+(correct|right|ok|okay)",
    r"did\s+i\s+(get|do)\s+(it|this|that|them)\s+(right|correct)",
    r"am\s+i\s+(correct|right)",
    r"have\s+i\s+got\s+(it|this|that)\s+right",
    r"was\s+i\s+(correct|right)",
    r"(correct|right)\s+answer\s*\?",
]

# An explicit equation with a numeric result on the right: "2+2=5", "3x = 9", "x=-1.5"
EQUATION_WITH_RESULT = r"[\w)\]]\s*=\s*[-−]?\s*\d+(?:[.,]\d+)?(?:\s*/\s*\d+)?"

_CHECK_RE = re.compile("|".join(CHECK_PHRASES), re.IGNORECASE)
_EQUATION_RE = re.compile(EQUATION_WITH_RESULT)


def is_answer_check(message: str) -> bool:
    """True if the message asks to verify an answer or states one."""
    if not message:
        return False
    text = " ".join(message.split())
    if _CHECK_RE.search(text):
        return True
    return bool(_EQUATION_RE.search(text))


def infer_effective_action(message: str, requested: Action) -> Action:
    """Return "check" when the message asks for verification, else the requested action."""
    if requested == Action.CHECK:
        return Action.CHECK
    if is_answer_check(message):
        logger.info(f"INTENT: '{message[:50]}' requested={requested.value} → check")
        return Action.CHECK
    return requested
