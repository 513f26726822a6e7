"""
Elora Assistant: Disclosure Enforcer
Every check-mode student reply passes through here BEFORE it is returned.

    INITIAL_REPLY ──clean──────────────────────────────→ FINAL
         │ leak
         ▼
    REWRITE_ATTEMPT ──clean────────────────────────────→ FINAL
         │ still leaks / rewrite call failed
         ▼
    FALLBACK_TEMPLATE ─────────────────────────────────→ FINAL

At most MAX_REWRITE_ROUNDS rewrite calls (default 1). If they don't produce
a clean reply, the pre-written hint is returned. The student never sees a
reply the policy flagged.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Any, Optional

from elora.config import MAX_REWRITE_ROUNDS
from elora.tutor.clean_output import clean_model_output
from elora.tutor.context import TutoringContext
from elora.tutor.disclosure import DisclosurePolicy, LexicalDisclosurePolicy, disclosure_prohibited
from elora.tutor.instruction_builder import build_rewrite_prompt
from elora.tutor.llm import CompletionClient

logger = logging.getLogger(__name__)


class LeakState(str, Enum):
    INITIAL_REPLY = "INITIAL_REPLY"
    REWRITE_ATTEMPT = "REWRITE_ATTEMPT"
    FALLBACK_TEMPLATE = "FALLBACK_TEMPLATE"
    FINAL = "FINAL"


# ─── Safe Fallback ───────────────────────────────────────────────────────────
# Used when the rewrite fails or still leaks. Must never trip the detector.

SAFE_HINT_FALLBACK = (
    "Let's check this together without giving the final result away yet.\n"
    "1. Go back through your working one step at a time.\n"
    "2. Check each calculation, especially the step where the numbers change.\n"
    "3. Fix the first step that looks off, then try again. What do you get?"
)


@dataclass
class EnforceResult:
    text: str
    checked: bool                  # False when disclosure was allowed
    rewrites: int = 0              # Rewrite calls issued
    used_fallback: bool = False
    path: List[LeakState] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        if not self.checked:
            return "not_applicable"
        if self.used_fallback:
            return "fallback"
        if self.rewrites:
            return "rewritten"
        return "clean"


async def enforce_disclosure(
    ctx: TutoringContext,
    messages: List[Dict[str, Any]],
    reply: str,
    client: CompletionClient,
    policy: Optional[DisclosurePolicy] = None,
    max_rounds: int = MAX_REWRITE_ROUNDS,
) -> EnforceResult:
    """
    Make sure a sanitized reply respects the disclosure rule.

    Args:
        ctx: Request context (decides whether the rule applies)
        messages: The primary prompt; its system message is reused for the rewrite
        reply: Sanitized primary reply
        client: Completion client for the rewrite call
        policy: Leak detector (default LexicalDisclosurePolicy)
        max_rounds: Rewrite calls allowed before falling back

    Returns:
        EnforceResult with the text to return and how we got there
    """
    path = [LeakState.INITIAL_REPLY]

    if not disclosure_prohibited(ctx):
        path.append(LeakState.FINAL)
        return EnforceResult(text=reply, checked=False, path=path)

    policy = policy or LexicalDisclosurePolicy()
    if not policy.is_leak(reply):
        path.append(LeakState.FINAL)
        return EnforceResult(text=reply, checked=True, path=path)

    logger.warning(f"LEAK: attempt={ctx.attempt}, reply='{reply[:50]}'")

    current = reply
    rewrites = 0
    for _ in range(max(0, max_rounds)):
        path.append(LeakState.REWRITE_ATTEMPT)
        rewrites += 1
        result = await client.complete(build_rewrite_prompt(messages, current))
        if not result.ok:
            logger.warning(f"LEAK: rewrite call failed ({result.status_code}), using fallback")
            break

        current = clean_model_output(result.text)
        if current and not policy.is_leak(current):
            logger.info(f"LEAK: rewrite {rewrites} clean")
            path.append(LeakState.FINAL)
            return EnforceResult(text=current, checked=True, rewrites=rewrites, path=path)
        logger.warning(f"LEAK: rewrite {rewrites} still leaks")

    path.extend([LeakState.FALLBACK_TEMPLATE, LeakState.FINAL])
    return EnforceResult(
        text=SAFE_HINT_FALLBACK,
        checked=True,
        rewrites=rewrites,
        used_fallback=True,
        path=path,
    )
