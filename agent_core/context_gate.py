"""
Context Gate

Final situational veto of the intent lifecycle. Runs AFTER the policy
engine and independently of it: an intent can be policy-authorized yet
context-deferred. The two reasons are recorded separately and never merged.

Rules (evaluated in order, first match wins):
1. User is sleeping and the intent controls a device -> DEFER
2. Confidence below the gate floor -> DEFER
3. Otherwise -> APPROVE
"""

import logging
from typing import Tuple

from .context_model import Context
from .intent_model import Intent

logger = logging.getLogger("context_gate")

DEFAULT_MIN_CONFIDENCE = 0.5
SLEEPING_ACTIVITY = "sleeping"
DEVICE_PREFIX = "device."

APPROVED_REASON = "Intent appears appropriate for current context"
SLEEPING_REASON = "User appears to be sleeping, device control may not be appropriate"


class ContextGate:
    """Situational veto using ambient state (activity, recent events)."""

    def __init__(self, min_confidence: float = DEFAULT_MIN_CONFIDENCE):
        self.min_confidence = min_confidence

    def evaluate_intent(self, intent: Intent, context: Context) -> Tuple[bool, str]:
        """
        Evaluate if an intent makes sense in the current context.

        Returns:
            Tuple of (approved: bool, reason: str)
        """
        if (
            context.current_activity == SLEEPING_ACTIVITY
            and intent.intent_type.startswith(DEVICE_PREFIX)
        ):
            logger.warning(
                f"Intent DEFERRED by context: id={intent.id}, type={intent.intent_type}, "
                f"activity={context.current_activity}"
            )
            return False, SLEEPING_REASON

        if intent.confidence < self.min_confidence:
            logger.warning(
                f"Intent DEFERRED by context: id={intent.id}, type={intent.intent_type}, "
                f"confidence={intent.confidence}"
            )
            return False, f"Low confidence: {intent.confidence}"

        logger.debug(f"Intent APPROVED by context: id={intent.id}, type={intent.intent_type}")
        return True, APPROVED_REASON
