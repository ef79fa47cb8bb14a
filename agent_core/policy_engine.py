"""
Policy Engine

Authorization gate of the intent lifecycle. The agent prepares and suggests,
humans authorize.

Key Features:
- Module allow-list (empty = unrestricted)
- Time-bounded permission grants per module
- Hierarchical action matching: a grant for "device" covers
  "device.control" and "device.control.dim"; a grant for "device.control"
  covers its own subtree but NOT "device"
- Permission request workflow (request -> approve/deny)
- Snapshot/restore through an external storage collaborator

CRITICAL CONSTRAINTS:
- VOLATILE: The grant table lives in process memory only
- APPEND-ONLY GRANTS: Grants are never edited. Expiry and revocation remove
  whole entries
- SERIALIZED: Every read and write of the grant table happens under one lock
- ONE CLOCK READ PER OPERATION: Expiry is judged against a single "now"
- SCOPE NOT ENFORCED: Permission.scope is stored and round-tripped but not
  consulted when matching
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from .errors import PolicyViolation
from .intent_model import (
    Intent,
    is_namespace_match,
    parse_timestamp,
    utc_now,
)
from .providers import StorageProvider

logger = logging.getLogger("policy_engine")

# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
PERMISSIONS_NAMESPACE = "permissions"
DEFAULT_SNAPSHOT_KEY = "grant_table"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive timestamps are taken to be UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _as_frozenset(values: Iterable[str], name: str) -> FrozenSet[str]:
    if isinstance(values, str):
        raise ValueError(f"{name} must be a collection of strings, not a string")
    return frozenset(values)


# -----------------------------------------------------------------------------
# Permission (Immutable)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Permission:
    """
    A time-bounded grant of one or more action namespaces within a module.

    expires_at=None means the grant never expires.
    """
    module: str
    actions: FrozenSet[str]
    scope: FrozenSet[str] = frozenset()
    granted_at: datetime = field(default_factory=utc_now)
    expires_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "actions", _as_frozenset(self.actions, "actions"))
        object.__setattr__(self, "scope", _as_frozenset(self.scope, "scope"))
        object.__setattr__(self, "granted_at", _as_utc(self.granted_at))
        object.__setattr__(self, "expires_at", _as_utc(self.expires_at))

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def covers(self, action: str) -> bool:
        """True if any granted action equals `action` or is an ancestor of it."""
        return any(is_namespace_match(granted, action) for granted in self.actions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module": self.module,
            "actions": sorted(self.actions),
            "scope": sorted(self.scope),
            "granted_at": self.granted_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Permission":
        return cls(
            module=data["module"],
            actions=frozenset(data.get("actions", [])),
            scope=frozenset(data.get("scope", [])),
            granted_at=parse_timestamp(data["granted_at"]),
            expires_at=parse_timestamp(data.get("expires_at")),
        )


# -----------------------------------------------------------------------------
# Permission Request & Decision
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class PermissionRequest:
    """A request for the human to grant one action within a module."""
    module: str
    action: str
    reasoning: str
    intent_id: Optional[str] = None
    scope: FrozenSet[str] = frozenset()
    request_id: str = field(default_factory=lambda: f"perm-{uuid.uuid4().hex[:12]}")
    requested_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        object.__setattr__(self, "scope", _as_frozenset(self.scope, "scope"))

    @classmethod
    def for_intent(cls, intent: Intent, scope: Iterable[str] = ()) -> "PermissionRequest":
        """
        Build the request a human would need to approve for this intent.

        Raises PolicyViolation for intents without a target module.
        """
        if not intent.target_module:
            raise PolicyViolation(
                "Cannot request permission for an intent without a target module",
                intent_type=intent.intent_type,
            )
        return cls(
            module=intent.target_module,
            action=intent.intent_type,
            reasoning=intent.reasoning,
            intent_id=intent.id,
            scope=frozenset(scope),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "intent_id": self.intent_id,
            "module": self.module,
            "action": self.action,
            "scope": sorted(self.scope),
            "reasoning": self.reasoning,
            "requested_at": self.requested_at.isoformat(),
        }


@dataclass
class PolicyDecision:
    """
    Result of policy evaluation.

    If allowed is False, the intent MUST NOT be released.
    """
    allowed: bool
    intent_id: str
    intent_type: str
    target_module: Optional[str]
    denied_reason: Optional[str] = None
    evaluated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "intent_id": self.intent_id,
            "intent_type": self.intent_type,
            "target_module": self.target_module,
            "denied_reason": self.denied_reason,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


# -----------------------------------------------------------------------------
# Policy Engine
# -----------------------------------------------------------------------------
class PolicyEngine:
    """
    Holds the grant table and decides ALLOW/DENY for intents.

    Instances are explicitly owned and passed around. There is no global
    engine.
    """

    def __init__(
        self,
        allowed_modules: Optional[Iterable[str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._allowed_modules: FrozenSet[str] = frozenset(allowed_modules or ())
        self._clock = clock or utc_now
        self._permissions: Dict[str, List[Permission]] = {}
        self._pending: Dict[str, PermissionRequest] = {}
        self._lock = threading.RLock()

    @property
    def allowed_modules(self) -> FrozenSet[str]:
        return self._allowed_modules

    def _now(self) -> datetime:
        return _as_utc(self._clock())

    # -------------------------------------------------------------------------
    # Grant Table Mutation
    # -------------------------------------------------------------------------

    def grant(self, permission: Permission) -> Permission:
        """Append a grant. Overlapping grants are neither merged nor deduplicated."""
        with self._lock:
            self._permissions.setdefault(permission.module, []).append(permission)
        logger.info(
            f"Permission granted: module={permission.module}, "
            f"actions={sorted(permission.actions)}, expires_at={permission.expires_at}"
        )
        return permission

    def grant_actions(
        self,
        module: str,
        actions: Iterable[str],
        expires_in: Optional[timedelta] = None,
        scope: Iterable[str] = (),
    ) -> Permission:
        """Grant actions starting now, optionally expiring after `expires_in`."""
        with self._lock:
            now = self._now()
            permission = Permission(
                module=module,
                actions=_as_frozenset(actions, "actions"),
                scope=_as_frozenset(scope, "scope"),
                granted_at=now,
                expires_at=now + expires_in if expires_in is not None else None,
            )
            return self.grant(permission)

    def revoke_module(self, module: str) -> int:
        """Remove every grant for a module, expired or not. Returns the count."""
        with self._lock:
            removed = len(self._permissions.pop(module, []))
        logger.info(f"Module revoked: module={module}, grants_removed={removed}")
        return removed

    def clear_expired(self) -> int:
        """
        Remove grants whose expiry is strictly before now.

        Modules left without grants are dropped from the table.
        Returns the number of grants removed.
        """
        with self._lock:
            now = self._now()
            cleared = 0
            for module in list(self._permissions):
                grants = self._permissions[module]
                active = [p for p in grants if not p.is_expired(now)]
                cleared += len(grants) - len(active)
                if active:
                    self._permissions[module] = active
                else:
                    del self._permissions[module]

        if cleared:
            logger.info(f"Expired permissions cleared: count={cleared}")
        return cleared

    # -------------------------------------------------------------------------
    # Authorization
    # -------------------------------------------------------------------------

    def _matches(self, module: str, action: str, now: datetime) -> bool:
        for permission in self._permissions.get(module, ()):
            if permission.is_expired(now):
                continue
            if permission.covers(action):
                return True
        return False

    def check_intent(self, intent: Intent) -> None:
        """
        Check an intent against the allow-list and the grant table.

        Raises PolicyViolation when the intent is not authorized.
        """
        self._check(intent, self._now())

    def _check(self, intent: Intent, now: datetime) -> None:
        if not intent.requires_permission:
            return

        module = intent.target_module
        if not module:
            raise PolicyViolation(
                "Intent requires permission but has no target module",
                intent_type=intent.intent_type,
            )

        if self._allowed_modules and module not in self._allowed_modules:
            raise PolicyViolation(
                f"Module '{module}' is not in allowed modules list",
                intent_type=intent.intent_type,
                module=module,
            )

        with self._lock:
            permitted = self._matches(module, intent.intent_type, now)

        if not permitted:
            raise PolicyViolation(
                f"No valid permission found for intent type '{intent.intent_type}'",
                intent_type=intent.intent_type,
                module=module,
            )

    def authorize(self, intent: Intent) -> PolicyDecision:
        """Evaluate an intent without raising. Denials are logged, not thrown."""
        now = self._now()
        try:
            self._check(intent, now)
        except PolicyViolation as e:
            logger.warning(
                f"Intent DENIED by policy: id={intent.id}, type={intent.intent_type}, "
                f"reason={e.message}"
            )
            return PolicyDecision(
                allowed=False,
                intent_id=intent.id,
                intent_type=intent.intent_type,
                target_module=intent.target_module,
                denied_reason=e.message,
                evaluated_at=now,
            )

        logger.info(f"Intent AUTHORIZED by policy: id={intent.id}, type={intent.intent_type}")
        return PolicyDecision(
            allowed=True,
            intent_id=intent.id,
            intent_type=intent.intent_type,
            target_module=intent.target_module,
            evaluated_at=now,
        )

    def is_action_permitted(self, module: str, action: str) -> bool:
        """Lower-level check without an Intent. Same matching and expiry rule."""
        with self._lock:
            return self._matches(module, action, self._now())

    def get_permissions(self, module: str) -> List[Permission]:
        """Active (unexpired) grants for a module, in grant order."""
        with self._lock:
            now = self._now()
            return [p for p in self._permissions.get(module, ()) if not p.is_expired(now)]

    def grant_count(self) -> int:
        with self._lock:
            return sum(len(grants) for grants in self._permissions.values())

    # -------------------------------------------------------------------------
    # Permission Requests
    # -------------------------------------------------------------------------

    def request_permission(self, request: PermissionRequest) -> str:
        """Queue a request for human review. Returns its request id."""
        with self._lock:
            self._pending[request.request_id] = request
        logger.info(
            f"Permission requested: request_id={request.request_id}, "
            f"module={request.module}, action={request.action}"
        )
        return request.request_id

    def approve_request(
        self,
        request_id: str,
        expires_in: Optional[timedelta] = None,
    ) -> Optional[Permission]:
        """Turn a pending request into a grant. Returns None for unknown ids."""
        with self._lock:
            request = self._pending.pop(request_id, None)
            if request is None:
                logger.warning(f"Approve for unknown permission request: {request_id}")
                return None
            return self.grant_actions(
                request.module,
                [request.action],
                expires_in=expires_in,
                scope=request.scope,
            )

    def deny_request(self, request_id: str) -> bool:
        with self._lock:
            denied = self._pending.pop(request_id, None) is not None
        if denied:
            logger.info(f"Permission request denied: request_id={request_id}")
        return denied

    def pending_requests(self) -> List[PermissionRequest]:
        with self._lock:
            return list(self._pending.values())

    # -------------------------------------------------------------------------
    # Snapshot / Restore
    # -------------------------------------------------------------------------

    def snapshot(self) -> List[Dict[str, Any]]:
        """Every grant (expired included) as plain dicts, module by module."""
        with self._lock:
            return [
                permission.to_dict()
                for grants in self._permissions.values()
                for permission in grants
            ]

    def restore(self, records: Iterable[Dict[str, Any]], replace: bool = True) -> int:
        """Load grants from snapshot records. Returns the number restored."""
        permissions = [Permission.from_dict(record) for record in records]
        with self._lock:
            if replace:
                self._permissions.clear()
            for permission in permissions:
                self._permissions.setdefault(permission.module, []).append(permission)
        logger.info(f"Grant table restored: grants={len(permissions)}, replace={replace}")
        return len(permissions)

    def save_to(self, storage: StorageProvider, key: str = DEFAULT_SNAPSHOT_KEY) -> int:
        records = self.snapshot()
        storage.put(PERMISSIONS_NAMESPACE, key, records)
        return len(records)

    def load_from(self, storage: StorageProvider, key: str = DEFAULT_SNAPSHOT_KEY) -> int:
        return self.restore(storage.get(PERMISSIONS_NAMESPACE, key, []) or [])
