"""
Elora Assistant: Access Policy
The gate between a request and the model provider.

Checked in order, first failure wins:
1. Educators must be verified, whatever they ask for.
2. Lesson / worksheet / assessment / slides need a verified teacher license.

Runs BEFORE any model call. A denied request costs nothing upstream.
"""

import logging

from elora.errors import AuthorizationError
from elora.tutor.context import PRIVILEGED_ACTIONS, Role, TutoringContext

logger = logging.getLogger(__name__)


class AccessPolicy:
    """Role / verification / license gate. Stateless."""

    def check(self, ctx: TutoringContext) -> TutoringContext:
        """Return ctx unchanged, or raise AuthorizationError."""
        auth = ctx.auth

        if ctx.role == Role.EDUCATOR and not auth.verified:
            logger.info("ACCESS: educator not verified, denied")
            raise AuthorizationError("verification_required")

        if ctx.effective_action in PRIVILEGED_ACTIONS:
            if not (auth.verified and auth.teacher_licensed):
                logger.info(f"ACCESS: {ctx.effective_action.value} needs teacher license, denied")
                raise AuthorizationError("teacher_license_required")

        return ctx
