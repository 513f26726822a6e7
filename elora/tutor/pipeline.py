"""
Elora Assistant: Tutoring Pipeline
normalize → infer intent → access policy → build prompt → LLM → clean → disclosure enforce

Stateless: a pipeline instance holds only its collaborators, so one
instance serves any number of concurrent requests.
Validation and access failures raise before the first model call.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from elora.errors import InternalError, TutorError, UpstreamError
from elora.tutor.access_policy import AccessPolicy
from elora.tutor.clean_output import clean_model_output
from elora.tutor.context import AuthContext, build_context
from elora.tutor.disclosure import DisclosurePolicy, LexicalDisclosurePolicy
from elora.tutor.enforcer import enforce_disclosure
from elora.tutor.input_classifier import infer_effective_action
from elora.tutor.instruction_builder import build_prompt
from elora.tutor.llm import CompletionClient, CompletionResult
from elora.tutor.normalizer import normalize_request
from elora.config import MAX_REWRITE_ROUNDS

logger = logging.getLogger("elora.pipeline")


@dataclass
class TutoringResponse:
    reply: str
    effective_action: str
    action_overridden: bool = False
    leak_outcome: str = "not_applicable"
    rewrites: int = 0


def upstream_error(result: CompletionResult) -> UpstreamError:
    status = result.status_code if 400 <= result.status_code <= 599 else 502
    return UpstreamError("upstream_error", result.error_detail or "Model provider error.", status)


class TutoringPipeline:
    def __init__(
        self,
        client: CompletionClient,
        access_policy: Optional[AccessPolicy] = None,
        disclosure_policy: Optional[DisclosurePolicy] = None,
        max_rewrite_rounds: int = MAX_REWRITE_ROUNDS,
    ):
        self.client = client
        self.access_policy = access_policy or AccessPolicy()
        self.disclosure_policy = disclosure_policy or LexicalDisclosurePolicy()
        self.max_rewrite_rounds = max_rewrite_rounds

    async def run(self, payload: dict, auth: AuthContext) -> TutoringResponse:
        """Run one request end to end. Raises TutorError subclasses only."""
        try:
            return await self._run(payload, auth)
        except TutorError:
            raise
        except Exception:
            logger.exception("Pipeline failed unexpectedly")
            raise InternalError()

    async def _run(self, payload: dict, auth: AuthContext) -> TutoringResponse:
        # ── Step 1: Normalize ────────────────────────────────────────────
        request = normalize_request(payload)

        # ── Step 2: Intent ───────────────────────────────────────────────
        effective = infer_effective_action(request.message, request.requested_action)
        ctx = build_context(request, effective, auth)

        # ── Step 3: Access ───────────────────────────────────────────────
        self.access_policy.check(ctx)

        action = ctx.effective_action.value
        if ctx.action_overridden:
            action = f"{ctx.requested_action.value}→{action} (override)"
        logger.info(
            f"Request: role={ctx.role.value}, action={action}, "
            f"attempt={ctx.attempt}, image={ctx.has_image}"
        )

        # ── Step 4: Prompt + LLM ─────────────────────────────────────────
        messages = build_prompt(ctx)
        result = await self.client.complete(messages)
        if not result.ok:
            raise upstream_error(result)

        # ── Step 5: Clean ────────────────────────────────────────────────
        reply = clean_model_output(result.text)
        if not reply:
            raise UpstreamError("empty_reply", "The model returned an empty reply.")

        # ── Step 6: Disclosure ───────────────────────────────────────────
        enforced = await enforce_disclosure(
            ctx, messages, reply, self.client,
            policy=self.disclosure_policy,
            max_rounds=self.max_rewrite_rounds,
        )
        if enforced.checked:
            logger.info(f"Disclosure: {enforced.outcome}, rewrites={enforced.rewrites}")

        return TutoringResponse(
            reply=enforced.text,
            effective_action=ctx.effective_action.value,
            action_overridden=ctx.action_overridden,
            leak_outcome=enforced.outcome,
            rewrites=enforced.rewrites,
        )
