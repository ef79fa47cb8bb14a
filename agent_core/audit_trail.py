"""
Intent Audit Trail

Append-only sequence of (Intent, disposition) records.

CRITICAL CONSTRAINTS:
- APPEND-ONLY: Records are never edited or removed
- ONE RECORD PER STAGE: generator, policy and context decisions are separate
  records, so a policy denial and a context deferral are never conflated
- IN MEMORY: Durable copies are the caller's job (see to_jsonl)
"""

import json
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .intent_model import Intent, IntentDisposition, utc_now


class AuditStage(str, Enum):
    """Lifecycle stage that produced a disposition."""
    GENERATOR = "generator"
    POLICY = "policy"
    CONTEXT = "context"


@dataclass(frozen=True)
class AuditRecord:
    """Immutable audit entry for one lifecycle stage of one intent."""
    intent_id: Optional[str]
    intent_type: str
    stage: str  # AuditStage value
    disposition: str  # IntentDisposition value
    reason: str
    intent: Optional[Dict[str, Any]] = None
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    recorded_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "intent_id": self.intent_id,
            "intent_type": self.intent_type,
            "stage": self.stage,
            "disposition": self.disposition,
            "reason": self.reason,
            "intent": self.intent,
            "recorded_at": self.recorded_at.isoformat(),
        }


class AuditTrail:
    def __init__(self):
        self._records: List[AuditRecord] = []
        self._lock = threading.Lock()

    def record(
        self,
        stage: AuditStage,
        disposition: IntentDisposition,
        reason: str,
        intent: Optional[Intent] = None,
        intent_type: Optional[str] = None,
    ) -> AuditRecord:
        """Append one record. `intent` is None for proposals rejected before creation."""
        entry = AuditRecord(
            intent_id=intent.id if intent else None,
            intent_type=intent.intent_type if intent else (intent_type or ""),
            stage=AuditStage(stage).value,
            disposition=IntentDisposition(disposition).value,
            reason=reason,
            intent=intent.to_dict() if intent else None,
        )
        with self._lock:
            self._records.append(entry)
        return entry

    def records(self, intent_id: Optional[str] = None) -> List[AuditRecord]:
        with self._lock:
            if intent_id is None:
                return list(self._records)
            return [r for r in self._records if r.intent_id == intent_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def to_jsonl(self) -> str:
        """All records as JSON lines, oldest first. Non-JSON values are written as strings."""
        return "".join(json.dumps(r.to_dict(), sort_keys=True, default=str) + "\n" for r in self.records())
