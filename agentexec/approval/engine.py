"""Approval engine.

Combines the session's "always approved" memo with the policy-driven safety
classifier, and maps a human's review decision onto execution.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..types import (
    ApprovalDecision,
    ApprovalPolicy,
    AutoApprove,
    CommandConfirmation,
    ReviewDecision,
    ReviewOutcome,
)
from .keys import derive_command_key
from .safety import CommandSafetyClassifier, SafetyClassifier

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)

DENY_CONTINUE_NOTE = "No, don't do that, keep going though."
DENY_STOP_NOTE = "No, don't do that. Stop for now."


class ApprovalEngine:
    """Decides whether a proposed command may run, and how."""

    def __init__(self, session: Session, classifier: SafetyClassifier | None = None):
        self.session = session
        self.classifier = classifier or CommandSafetyClassifier(session.config.allowlist)

    def classify(
        self,
        argv: list[str],
        workdir: str | None,
        policy: ApprovalPolicy | None = None,
        writable_roots: list[str] | None = None,
    ) -> ApprovalDecision:
        """Classify a command.

        A command whose key the user chose to always approve runs unsandboxed
        without consulting the policy.
        """
        key = derive_command_key(argv)
        if key in self.session.always_approved:
            logger.debug("Command key %r is always approved", key)
            return AutoApprove(sandboxed=False, reason="Always approved this session")

        policy = policy or self.session.config.approval_policy
        decision = self.classifier.assess(argv, workdir, policy, list(writable_roots or []))
        logger.debug("Classified %r under %s as %s", key, policy.value, decision.type)
        return decision

    def review(self, argv: list[str], confirmation: CommandConfirmation) -> ReviewOutcome:
        """Apply a human's decision on a prompted command.

        ``always`` memoizes the command key for the rest of the session.
        ``explain`` leaves the command undecided so the caller may ask again.
        """
        decision = confirmation.review
        if decision == ReviewDecision.ALWAYS:
            key = derive_command_key(argv)
            self.session.always_approved.add(key)
            logger.info("Command key %r added to always-approved set", key)
            return ReviewOutcome(approved=True)
        if decision == ReviewDecision.YES:
            return ReviewOutcome(approved=True)
        if decision == ReviewDecision.EXPLAIN:
            return ReviewOutcome(approved=False, decided=False)
        if decision == ReviewDecision.NO_CONTINUE:
            message = (confirmation.custom_deny_message or "").strip()
            return ReviewOutcome(approved=False, note=message or DENY_CONTINUE_NOTE)
        return ReviewOutcome(approved=False, note=DENY_STOP_NOTE)
