"""
Agent Core Errors

Structured, recoverable error kinds raised by the intent lifecycle.

None of these errors is fatal to the process. Each one is the expected
outcome of a rejected or unauthorized proposal and is handed back to the
caller, who decides whether to re-prompt, ask the human for a fresh grant,
or drop the intent. The core never retries.
"""

from typing import Any, Dict, Optional


# -----------------------------------------------------------------------------
# Base Error
# -----------------------------------------------------------------------------
class AgentCoreError(Exception):
    """Base agent core error with structured details."""
    def __init__(self, code: str, message: str, details: Dict[str, Any] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# -----------------------------------------------------------------------------
# Lifecycle Errors
# -----------------------------------------------------------------------------
class InvalidIntent(AgentCoreError):
    """Malformed or under-confidence intent at generation/validation time."""
    def __init__(self, message: str, field: Optional[str] = None, **details: Any):
        if field is not None:
            details["field"] = field
        super().__init__(code="INVALID_INTENT", message=message, details=details)
        self.field = field


class PolicyViolation(AgentCoreError):
    """
    Authorization denial.

    This is the normal outcome of an unauthorized request, not a bug.
    """
    def __init__(
        self,
        message: str,
        intent_type: Optional[str] = None,
        module: Optional[str] = None,
    ):
        super().__init__(
            code="POLICY_VIOLATION",
            message=message,
            details={"intent_type": intent_type, "module": module},
        )
        self.intent_type = intent_type
        self.module = module


class ConfigError(AgentCoreError):
    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(
            code="CONFIG_INVALID",
            message=message,
            details={"errors": errors or []},
        )
