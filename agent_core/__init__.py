"""
Local Agent Core

Cognitive-to-action authorization boundary of a local personal-assistant
agent. The agent EMITS intents, external executors act on them.

Phase 1: Intent Model
  * Frozen dataclass Intent (immutable after creation)
  * Dot-namespaced intent types; first segment is the module
  * Stable, backward-additive JSON schema

Phase 2: Intent Generator - CONFIDENCE GATE
  * Confidence floor (default 0.5); below floor -> InvalidIntent
  * LOCKED sensitive namespaces always require permission:
    device, message, email, calendar, file, network, location, camera,
    microphone, notification
  * Placeholder keyword strategy: parse_from_text (total, never raises)

Phase 3: Policy Engine - AUTHORIZATION GATE
  * Module allow-list (empty = unrestricted)
  * Time-bounded grants with segment-wise ancestor matching
  * Permission request workflow (request -> approve/deny)
  * Volatile grant table, snapshot/restore through storage collaborator
  * Single lock around every grant-table operation

Phase 4: Context Gate - SITUATIONAL VETO
  * Sleeping user -> device intents deferred
  * Low confidence -> deferred
  * Runs after, and independently of, the policy engine

Phase 5: Lifecycle & Audit
  * IntentLifecycle chains the three gates
  * Append-only (Intent, disposition) audit trail, one record per stage
"""

__version__ = "0.5.0"

# Single source of truth for phase metadata
CURRENT_PHASE = "5"
CURRENT_PHASE_NAME = "Lifecycle & Audit"
CURRENT_PHASE_FULL = f"Phase {CURRENT_PHASE}: {CURRENT_PHASE_NAME}"

from .errors import AgentCoreError, ConfigError, InvalidIntent, PolicyViolation
from .intent_model import Intent, IntentDisposition, SENSITIVE_PREFIXES
from .context_model import Context, Event, Habit, HabitFrequency
from .intent_generator import IntentGenerator
from .policy_engine import Permission, PermissionRequest, PolicyDecision, PolicyEngine
from .context_gate import ContextGate
from .planner import Planner
from .audit_trail import AuditRecord, AuditStage, AuditTrail
from .lifecycle import IntentLifecycle, LifecycleDecision, LifecycleResult
from .providers import (
    ContextSupplier,
    InMemoryStorage,
    LLMOptions,
    LLMProvider,
    LLMResponse,
    LLMUsage,
    MockLLMProvider,
    StaticContextSupplier,
    StorageProvider,
)
from .config import AgentCoreConfig, build_lifecycle, configure_logging, load_config

__all__ = [
    "AgentCoreError",
    "ConfigError",
    "InvalidIntent",
    "PolicyViolation",
    "Intent",
    "IntentDisposition",
    "SENSITIVE_PREFIXES",
    "Context",
    "Event",
    "Habit",
    "HabitFrequency",
    "IntentGenerator",
    "Permission",
    "PermissionRequest",
    "PolicyDecision",
    "PolicyEngine",
    "ContextGate",
    "Planner",
    "AuditRecord",
    "AuditStage",
    "AuditTrail",
    "IntentLifecycle",
    "LifecycleDecision",
    "LifecycleResult",
    "ContextSupplier",
    "InMemoryStorage",
    "LLMOptions",
    "LLMProvider",
    "LLMResponse",
    "LLMUsage",
    "MockLLMProvider",
    "StaticContextSupplier",
    "StorageProvider",
    "AgentCoreConfig",
    "build_lifecycle",
    "configure_logging",
    "load_config",
]
