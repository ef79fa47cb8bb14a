"""
Intent Lifecycle

Chains the three gates of the cognitive-to-action boundary:

    raw input -> IntentGenerator (confidence gate)
              -> PolicyEngine   (authorization gate)
              -> ContextGate    (situational gate)
              -> disposition handed to an external executor

An intent is RELEASED only when it is both authorized and approved. The
lifecycle never executes anything; it returns decisions and writes one audit
record per stage.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .audit_trail import AuditStage, AuditTrail
from .context_gate import ContextGate
from .context_model import Context
from .errors import InvalidIntent
from .intent_generator import IntentGenerator
from .intent_model import Intent, IntentDisposition
from .planner import Planner
from .policy_engine import PolicyEngine
from .providers import LLMOptions, LLMProvider

logger = logging.getLogger("intent_lifecycle")


# -----------------------------------------------------------------------------
# Lifecycle Results
# -----------------------------------------------------------------------------
@dataclass
class LifecycleDecision:
    """
    Final disposition of one intent.

    policy_reason and context_reason are kept apart. context_reason is None
    when the policy engine denied the intent and the gate was not consulted.
    """
    intent: Intent
    authorized: bool
    policy_reason: Optional[str]
    approved: bool
    context_reason: Optional[str]

    @property
    def released(self) -> bool:
        return self.authorized and self.approved

    @property
    def disposition(self) -> IntentDisposition:
        if not self.authorized:
            return IntentDisposition.DENIED
        if not self.approved:
            return IntentDisposition.DEFERRED
        return IntentDisposition.APPROVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.to_dict(),
            "authorized": self.authorized,
            "policy_reason": self.policy_reason,
            "approved": self.approved,
            "context_reason": self.context_reason,
            "released": self.released,
            "disposition": self.disposition.value,
        }


@dataclass
class LifecycleResult:
    """Outcome of processing one piece of user text."""
    text: str
    response_text: Optional[str] = None
    decisions: List[LifecycleDecision] = field(default_factory=list)

    @property
    def released(self) -> List[Intent]:
        return [d.intent for d in self.decisions if d.released]

    @property
    def requires_permission(self) -> bool:
        return any(d.intent.requires_permission for d in self.decisions)


# -----------------------------------------------------------------------------
# Intent Lifecycle
# -----------------------------------------------------------------------------
class IntentLifecycle:
    def __init__(
        self,
        generator: Optional[IntentGenerator] = None,
        policy: Optional[PolicyEngine] = None,
        gate: Optional[ContextGate] = None,
        audit: Optional[AuditTrail] = None,
        llm: Optional[LLMProvider] = None,
        llm_options: Optional[LLMOptions] = None,
        planner: Optional[Planner] = None,
    ):
        self.generator = generator or IntentGenerator()
        self.policy = policy or PolicyEngine()
        self.gate = gate or ContextGate()
        self.audit = audit or AuditTrail()
        self.llm = llm
        self.llm_options = llm_options or LLMOptions()
        self.planner = planner or Planner(gate=self.gate)

    def submit(self, intent: Intent, context: Context) -> LifecycleDecision:
        """
        Run an existing intent through validation, policy and context gates.

        Raises InvalidIntent if the intent fails validation (e.g. a malformed
        intent reconstructed from a peer).
        """
        try:
            self.generator.validate(intent)
        except InvalidIntent as e:
            self.audit.record(
                AuditStage.GENERATOR, IntentDisposition.REJECTED, e.message, intent=intent,
            )
            raise

        decision = self.policy.authorize(intent)
        if not decision.allowed:
            self.audit.record(
                AuditStage.POLICY, IntentDisposition.DENIED, decision.denied_reason, intent=intent,
            )
            return LifecycleDecision(
                intent=intent,
                authorized=False,
                policy_reason=decision.denied_reason,
                approved=False,
                context_reason=None,
            )

        policy_reason = (
            "Authorized by grant" if intent.requires_permission
            else "No permission required"
        )
        self.audit.record(
            AuditStage.POLICY, IntentDisposition.AUTHORIZED, policy_reason, intent=intent,
        )

        approved, context_reason = self.gate.evaluate_intent(intent, context)
        self.audit.record(
            AuditStage.CONTEXT,
            IntentDisposition.APPROVED if approved else IntentDisposition.DEFERRED,
            context_reason,
            intent=intent,
        )

        result = LifecycleDecision(
            intent=intent,
            authorized=True,
            policy_reason=policy_reason,
            approved=approved,
            context_reason=context_reason,
        )
        logger.info(
            f"Intent lifecycle complete: id={intent.id}, type={intent.intent_type}, "
            f"disposition={result.disposition.value}"
        )
        return result

    def propose(
        self,
        intent_type: str,
        confidence: float,
        parameters: Optional[Dict[str, Any]],
        reasoning: str,
        context: Context,
    ) -> LifecycleDecision:
        """Generate an intent and submit it. Re-raises InvalidIntent on rejection."""
        try:
            intent = self.generator.generate(intent_type, confidence, parameters, reasoning)
        except InvalidIntent as e:
            self.audit.record(
                AuditStage.GENERATOR,
                IntentDisposition.REJECTED,
                e.message,
                intent_type=intent_type,
            )
            logger.warning(f"Intent REJECTED at generation: type={intent_type}, reason={e.message}")
            raise

        self.audit.record(
            AuditStage.GENERATOR, IntentDisposition.GENERATED, reasoning, intent=intent,
        )
        return self.submit(intent, context)

    def process_text(self, text: str, context: Context) -> LifecycleResult:
        """
        Handle one user utterance.

        When an LLM is configured it is prompted with the context summary and
        its completion becomes response_text. The intents themselves come from
        the generator's text strategy.
        """
        result = LifecycleResult(text=text)

        if self.llm is not None:
            response = self.llm.complete(self.build_prompt(text, context), self.llm_options)
            result.response_text = response.text

        for intent in self.generator.parse_from_text(text):
            self.audit.record(
                AuditStage.GENERATOR, IntentDisposition.GENERATED, intent.reasoning, intent=intent,
            )
            result.decisions.append(self.submit(intent, context))

        return result

    def build_prompt(self, text: str, context: Context) -> str:
        return f"{self.planner.build_context_summary(context)}\nUser input: {text}"
