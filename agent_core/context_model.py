"""
Context Model

Read-only situational state consumed by the context gate and the planner.
Contexts are supplied by an external context provider; this package never
builds them from sensors or storage itself.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .intent_model import parse_timestamp, utc_now


class HabitFrequency(str, Enum):
    """How often a habit is expected to recur."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


# Hours after which a habit of a given frequency is considered due
HABIT_PERIOD_HOURS: Dict[HabitFrequency, int] = {
    HabitFrequency.DAILY: 24,
    HabitFrequency.WEEKLY: 168,
    HabitFrequency.MONTHLY: 720,
    HabitFrequency.CUSTOM: 24,
}


@dataclass
class Event:
    """Something that happened in the user's life or in the system."""
    event_type: str
    description: str
    importance: float = 0.5
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "description": self.description,
            "importance": self.importance,
            "metadata": self.metadata,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        return cls(
            id=data["id"],
            event_type=data["event_type"],
            description=data.get("description", ""),
            importance=data.get("importance", 0.5),
            metadata=data.get("metadata", {}),
            timestamp=parse_timestamp(data["timestamp"]),
        )


@dataclass
class Habit:
    """
    A tracked routine.

    `variance` is produced by the external habit-statistics helper
    (lower = more consistent) and is only read here.
    """
    name: str
    description: str = ""
    frequency: HabitFrequency = HabitFrequency.DAILY
    schedule: Optional[str] = None
    completion_count: int = 0
    last_completed: Optional[datetime] = None
    variance: Optional[float] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)

    @property
    def period_hours(self) -> int:
        return HABIT_PERIOD_HOURS[HabitFrequency(self.frequency)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "frequency": HabitFrequency(self.frequency).value,
            "schedule": self.schedule,
            "completion_count": self.completion_count,
            "last_completed": self.last_completed.isoformat() if self.last_completed else None,
            "variance": self.variance,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Habit":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            frequency=HabitFrequency(data.get("frequency", HabitFrequency.DAILY.value)),
            schedule=data.get("schedule"),
            completion_count=data.get("completion_count", 0),
            last_completed=parse_timestamp(data.get("last_completed")),
            variance=data.get("variance"),
            created_at=parse_timestamp(data["created_at"]),
        )


@dataclass
class Context:
    """User context at a point in time."""
    user_id: str
    current_location: Optional[str] = None
    current_activity: Optional[str] = None
    recent_events: List[Event] = field(default_factory=list)
    active_habits: List[Habit] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "current_location": self.current_location,
            "current_activity": self.current_activity,
            "recent_events": [e.to_dict() for e in self.recent_events],
            "active_habits": [h.to_dict() for h in self.active_habits],
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Context":
        return cls(
            user_id=data["user_id"],
            current_location=data.get("current_location"),
            current_activity=data.get("current_activity"),
            recent_events=[Event.from_dict(e) for e in data.get("recent_events", [])],
            active_habits=[Habit.from_dict(h) for h in data.get("active_habits", [])],
            timestamp=parse_timestamp(data["timestamp"]),
        )
