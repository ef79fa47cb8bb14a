"""
Intent Model & Namespace Helpers

This module defines the Intent record emitted by the agent core.
The agent EMITS intents, it NEVER executes them.

CRITICAL CONSTRAINTS:
- IMMUTABLE: An Intent is created once by the generator and never edited
- DISPOSITIONS ARE EXTERNAL: Authorized/Denied/Approved/Deferred are recorded
  next to the Intent (audit trail), never stored on it
- STABLE JSON: The serialized schema is backward-additive only
  (new optional fields, never renamed or removed ones)

Intent types are dot-namespaced ("device.control.dim"). The first segment is
the module, the unit of permission allow-listing.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import InvalidIntent


# -----------------------------------------------------------------------------
# Sensitive Namespaces (LOCKED)
# -----------------------------------------------------------------------------
# Intent types under these prefixes touch devices, people or personal data
# and always require an explicit permission grant.
SENSITIVE_PREFIXES: Tuple[str, ...] = (
    "device.",
    "message.",
    "email.",
    "calendar.",
    "file.",
    "network.",
    "location.",
    "camera.",
    "microphone.",
    "notification.",
)

NAMESPACE_SEPARATOR = "."

# Keys a serialized intent must carry
REQUIRED_KEYS: Tuple[str, ...] = ("id", "intent_type", "confidence", "created_at")


# -----------------------------------------------------------------------------
# Disposition Enum
# -----------------------------------------------------------------------------
class IntentDisposition(str, Enum):
    """
    Outcome attached to an Intent by one lifecycle stage.

    GENERATED/REJECTED come from the generator, AUTHORIZED/DENIED from the
    policy engine, APPROVED/DEFERRED from the context gate.
    """
    GENERATED = "generated"
    REJECTED = "rejected"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    APPROVED = "approved"
    DEFERRED = "deferred"


# -----------------------------------------------------------------------------
# Namespace Helpers
# -----------------------------------------------------------------------------
def namespace_segments(name: str) -> Tuple[str, ...]:
    """Split a dotted name into its path segments."""
    return tuple(name.split(NAMESPACE_SEPARATOR))


def is_namespace_match(action: str, intent_type: str) -> bool:
    """
    True if `action` equals `intent_type` or is a dotted ancestor of it.

    Matching is segment-wise, so "dev" never covers "device.control" and
    "device" never covers "devicex.on".
    """
    if not action or not intent_type:
        return False
    granted = namespace_segments(action)
    requested = namespace_segments(intent_type)
    if len(granted) > len(requested):
        return False
    return requested[:len(granted)] == granted


def requires_permission_for(intent_type: str) -> bool:
    return any(intent_type.startswith(prefix) for prefix in SENSITIVE_PREFIXES)


def target_module_for(intent_type: str) -> Optional[str]:
    """Module segment of an intent type, or None for un-namespaced types."""
    if NAMESPACE_SEPARATOR not in intent_type:
        return None
    return intent_type.split(NAMESPACE_SEPARATOR, 1)[0]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (accepting a trailing 'Z') into a datetime."""
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def freeze_parameters(value: Any) -> Any:
    """Read-only deep copy: mappings become mappingproxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze_parameters(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_parameters(v) for v in value)
    return value


def thaw_parameters(value: Any) -> Any:
    """Plain dict/list copy of frozen parameters."""
    if isinstance(value, Mapping):
        return {k: thaw_parameters(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw_parameters(v) for v in value]
    return value


# -----------------------------------------------------------------------------
# Intent (Immutable)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Intent:
    """
    Immutable record of a proposed action.

    parameters is held as a read-only deep copy. Fields are not validated on
    construction. Intents reconstructed from a peer process are checked by
    IntentGenerator.validate before they enter the lifecycle.
    """
    intent_type: str
    confidence: float
    reasoning: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    requires_permission: bool = False
    target_module: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        object.__setattr__(self, "parameters", freeze_parameters(self.parameters or {}))

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def module_path(self) -> Tuple[str, ...]:
        return namespace_segments(self.intent_type)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "intent_type": self.intent_type,
            "confidence": self.confidence,
            "parameters": thaw_parameters(self.parameters),
            "reasoning": self.reasoning,
            "requires_permission": self.requires_permission,
            "target_module": self.target_module,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Intent":
        """
        Create an intent from its dictionary form.

        Raises InvalidIntent for malformed payloads (missing keys, wrong
        types, unparseable timestamps).
        """
        if not isinstance(data, Mapping):
            raise InvalidIntent("Intent payload must be a JSON object")

        for key in REQUIRED_KEYS:
            if key not in data:
                raise InvalidIntent(f"Intent payload missing '{key}'", field=key)

        parameters = data.get("parameters") or {}
        if not isinstance(parameters, Mapping):
            raise InvalidIntent("Intent parameters must be an object", field="parameters")

        try:
            confidence = float(data["confidence"])
        except (TypeError, ValueError) as e:
            raise InvalidIntent(f"Invalid confidence: {data['confidence']!r}", field="confidence") from e

        try:
            created_at = parse_timestamp(data["created_at"])
        except (TypeError, ValueError) as e:
            raise InvalidIntent(f"Invalid created_at: {data['created_at']!r}", field="created_at") from e

        return cls(
            id=str(data["id"]),
            intent_type=str(data["intent_type"]),
            confidence=confidence,
            parameters=parameters,
            reasoning=data.get("reasoning", ""),
            requires_permission=bool(data.get("requires_permission", False)),
            target_module=data.get("target_module"),
            created_at=created_at,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, indent=2)

    @classmethod
    def from_json(cls, payload: str) -> "Intent":
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise InvalidIntent(f"Intent payload is not valid JSON: {e}") from e
        return cls.from_dict(data)
