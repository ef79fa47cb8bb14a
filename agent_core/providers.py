"""
Collaborator Interfaces

The core depends on these capability interfaces only, never on a concrete
provider:
- LLMProvider: text completion (local model or cloud backend)
- StorageProvider: durable put/get/query record store
- ContextSupplier: current situational Context

MockLLMProvider and InMemoryStorage are deterministic doubles used by tests
and local demos. Neither performs I/O.
"""

import copy
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .context_model import Context


# -----------------------------------------------------------------------------
# LLM Types
# -----------------------------------------------------------------------------
@dataclass
class LLMOptions:
    """Completion options."""
    temperature: float = 0.7
    max_tokens: int = 500
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    system_prompt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LLMUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMResponse:
    text: str
    finish_reason: str = "stop"
    usage: LLMUsage = field(default_factory=LLMUsage)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -----------------------------------------------------------------------------
# Interfaces
# -----------------------------------------------------------------------------
@runtime_checkable
class LLMProvider(Protocol):
    name: str

    def complete(self, prompt: str, options: LLMOptions) -> LLMResponse:
        ...

    def is_available(self) -> bool:
        ...


@runtime_checkable
class StorageProvider(Protocol):
    def put(self, namespace: str, key: str, value: Any) -> None:
        ...

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        ...

    def query(self, namespace: str) -> List[Any]:
        ...


@runtime_checkable
class ContextSupplier(Protocol):
    def current_context(self) -> Context:
        ...


# -----------------------------------------------------------------------------
# Deterministic Doubles
# -----------------------------------------------------------------------------
class MockLLMProvider:
    """Keyword-driven canned responses with whitespace token counts."""

    def __init__(self, name: str = "mock"):
        self.name = name
        self.prompts: List[str] = []

    def complete(self, prompt: str, options: Optional[LLMOptions] = None) -> LLMResponse:
        self.prompts.append(prompt)
        lowered = prompt.lower()
        if "weather" in lowered:
            text = "The weather is sunny today."
        elif "time" in lowered:
            text = "It is currently 3:00 PM."
        else:
            text = "I understand. How can I help you?"

        prompt_tokens = len(prompt.split())
        completion_tokens = len(text.split())
        return LLMResponse(
            text=text,
            finish_reason="stop",
            usage=LLMUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )

    def is_available(self) -> bool:
        return True


class InMemoryStorage:
    """
    Volatile namespaced key-value store.

    Values are deep-copied on the way in and out so callers cannot mutate
    stored records.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def put(self, namespace: str, key: str, value: Any) -> None:
        with self._lock:
            self._data.setdefault(namespace, {})[key] = copy.deepcopy(value)

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data.get(namespace, {}):
                return default
            return copy.deepcopy(self._data[namespace][key])

    def query(self, namespace: str) -> List[Any]:
        with self._lock:
            return [copy.deepcopy(v) for v in self._data.get(namespace, {}).values()]


class StaticContextSupplier:
    def __init__(self, context: Context):
        self._context = context

    def current_context(self) -> Context:
        return self._context
