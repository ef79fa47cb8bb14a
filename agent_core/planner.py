"""
Planner

Reasoning helpers that prepare prompts and suggestions. The planner
SUGGESTS, it never commands: suggestions are plain strings that a human (or
the generator, via the LLM) may turn into intents.
"""

from collections import OrderedDict
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from .context_gate import ContextGate
from .context_model import Context, Event, HabitFrequency
from .intent_model import Intent, utc_now

DEFAULT_MAX_CONTEXT_EVENTS = 10
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


class Planner:
    def __init__(
        self,
        max_context_events: int = DEFAULT_MAX_CONTEXT_EVENTS,
        gate: Optional[ContextGate] = None,
    ):
        self.max_context_events = max_context_events
        self.gate = gate or ContextGate()

    def build_context_summary(self, context: Context) -> str:
        """Build a context summary for LLM prompting."""
        lines = [
            f"User: {context.user_id}",
            f"Timestamp: {context.timestamp.isoformat()}",
        ]
        if context.current_location:
            lines.append(f"Location: {context.current_location}")
        if context.current_activity:
            lines.append(f"Activity: {context.current_activity}")

        if context.recent_events:
            lines.append("")
            lines.append("Recent events:")
            newest_first = list(reversed(context.recent_events))[:self.max_context_events]
            for event in newest_first:
                lines.append(
                    f"  - {event.event_type} ({event.timestamp.strftime(TIMESTAMP_FORMAT)}): "
                    f"{event.description}"
                )

        if context.active_habits:
            lines.append("")
            lines.append("Active habits:")
            for habit in context.active_habits:
                last = (
                    habit.last_completed.strftime(TIMESTAMP_FORMAT)
                    if habit.last_completed else "never"
                )
                lines.append(f"  - {habit.name} ({HabitFrequency(habit.frequency).value}): last completed {last}")

        return "\n".join(lines) + "\n"

    def compress_events(self, events: Sequence[Event]) -> str:
        """Compress events into a per-type summary."""
        if not events:
            return "No recent events."

        # Types listed in first-seen order
        by_type: "OrderedDict[str, List[Event]]" = OrderedDict()
        for event in events:
            by_type.setdefault(event.event_type, []).append(event)

        lines = ["Event summary:"]
        for event_type, type_events in by_type.items():
            lines.append(f"  - {event_type}: {len(type_events)} occurrence(s)")
            most_important = max(type_events, key=lambda e: e.importance)
            lines.append(f"    Most important: {most_important.description}")
        return "\n".join(lines) + "\n"

    def suggest_actions(self, context: Context, now: Optional[datetime] = None) -> List[str]:
        """Suggest next actions. These are suggestions, the user must authorize."""
        now = now or utc_now()
        suggestions = []

        for habit in context.active_habits:
            if habit.last_completed is None:
                suggestions.append(f"Start habit: {habit.name}")
                continue
            hours_since = (now - habit.last_completed).total_seconds() / 3600
            if hours_since >= habit.period_hours:
                suggestions.append(f"Consider: {habit.name}")

        if context.current_activity == "working":
            suggestions.append("Take a break?")

        return suggestions

    def evaluate_intent(self, intent: Intent, context: Context) -> Tuple[bool, str]:
        return self.gate.evaluate_intent(intent, context)
