"""
Intent Generator

Converts understanding into structured Intent records.

The generator is the FIRST gate of the intent lifecycle:
- Confidence floor: proposals below the floor are REJECTED and never become
  Intent values
- Permission classification: sensitive namespaces always require a grant
- Module extraction: "device.control" -> "device"

parse_from_text is a placeholder keyword strategy. It is total (never raises)
and every intent it emits passes validate().
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from .errors import InvalidIntent
from .intent_model import (
    Intent,
    requires_permission_for,
    target_module_for,
    thaw_parameters,
)

logger = logging.getLogger("intent_generator")

# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
DEFAULT_MIN_CONFIDENCE = 0.5

# Fixed confidences of the keyword triggers
REMINDER_CONFIDENCE = 0.8
DEVICE_CONTROL_CONFIDENCE = 0.7
WEATHER_CONFIDENCE = 0.9
TIME_CONFIDENCE = 0.95


# -----------------------------------------------------------------------------
# Intent Generator
# -----------------------------------------------------------------------------
class IntentGenerator:
    """
    Turns raw signals into Intent values.

    The generator proposes. It never authorizes and never executes.
    """

    def __init__(self, min_confidence: float = DEFAULT_MIN_CONFIDENCE):
        if not 0.0 <= min_confidence <= 1.0:
            raise ValueError(f"min_confidence must be 0.0-1.0, got {min_confidence}")
        self.min_confidence = min_confidence

    def generate(
        self,
        intent_type: str,
        confidence: float,
        parameters: Optional[Dict[str, Any]] = None,
        reasoning: str = "",
    ) -> Intent:
        """
        Generate an intent from parsed understanding.

        Raises InvalidIntent when confidence is below the floor or the
        resulting intent fails validation.
        """
        if confidence < self.min_confidence:
            raise InvalidIntent(
                f"Confidence {confidence} below minimum {self.min_confidence}",
                field="confidence",
                intent_type=intent_type,
            )

        intent = Intent(
            intent_type=intent_type,
            confidence=confidence,
            parameters=parameters or {},
            reasoning=reasoning,
            requires_permission=self.requires_permission(intent_type),
            target_module=self.target_module_for(intent_type),
        )
        self.validate(intent)

        logger.debug(
            f"Intent generated: id={intent.id}, type={intent.intent_type}, "
            f"confidence={intent.confidence}, requires_permission={intent.requires_permission}"
        )
        return intent

    def validate(self, intent: Intent) -> None:
        """
        Validate intent structure.

        Stricter than generation: intents may arrive from outside the
        generator (e.g. reconstructed from a peer).
        """
        if not 0.0 <= intent.confidence <= 1.0:
            raise InvalidIntent(
                "Confidence must be between 0.0 and 1.0",
                field="confidence",
                intent_type=intent.intent_type,
            )
        if not intent.intent_type:
            raise InvalidIntent("Intent type cannot be empty", field="intent_type")
        if not intent.reasoning:
            raise InvalidIntent(
                "Reasoning cannot be empty",
                field="reasoning",
                intent_type=intent.intent_type,
            )
        if not isinstance(intent.parameters, Mapping):
            raise InvalidIntent(
                "Parameters must be a mapping",
                field="parameters",
                intent_type=intent.intent_type,
            )
        try:
            json.dumps(thaw_parameters(intent.parameters), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise InvalidIntent(
                f"Parameters are not JSON-serializable: {e}",
                field="parameters",
                intent_type=intent.intent_type,
            ) from e

    def requires_permission(self, intent_type: str) -> bool:
        return requires_permission_for(intent_type)

    def target_module_for(self, intent_type: str) -> Optional[str]:
        return target_module_for(intent_type)

    def to_json(self, intent: Intent) -> str:
        """Serialize intent to JSON for transmission to device agents."""
        return intent.to_json()

    def parse_from_text(self, text: str) -> List[Intent]:
        """
        Parse common intent patterns from text.

        Triggers are independent and non-exclusive: "turn on the lights and
        tell me the weather" yields two intents.
        """
        if not text:
            return []

        lowered = text.lower()
        candidates = []

        if "remind me to" in lowered or "reminder" in lowered:
            candidates.append((
                "reminder.create",
                REMINDER_CONFIDENCE,
                {"text": text},
                "User requested a reminder",
            ))

        if "turn on" in lowered or "turn off" in lowered:
            action = "on" if "turn on" in lowered else "off"
            candidates.append((
                "device.control",
                DEVICE_CONTROL_CONFIDENCE,
                {"action": action},
                f"User wants to turn {action} a device",
            ))

        if "weather" in lowered:
            candidates.append((
                "weather.query",
                WEATHER_CONFIDENCE,
                {},
                "User asking about weather",
            ))

        if "what time" in lowered or "current time" in lowered:
            candidates.append((
                "time.query",
                TIME_CONFIDENCE,
                {},
                "User asking about current time",
            ))

        intents = []
        for intent_type, confidence, parameters, reasoning in candidates:
            try:
                intents.append(self.generate(intent_type, confidence, parameters, reasoning))
            except InvalidIntent as e:
                # Floor raised above a trigger's fixed confidence
                logger.debug(f"Trigger {intent_type} skipped: {e.message}")

        return intents
