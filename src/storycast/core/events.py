from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from typing import Callable
from uuid import uuid4

from storycast.contracts import CastingEvent, ChoiceResolution

CastingHandler = Callable[[CastingEvent], None]

CAST = "cast"
CASTING_FAILED = "casting_failed"


def casting_event_for(resolution: ChoiceResolution) -> CastingEvent:
    if resolution.success:
        event_type = CAST
        actors = tuple(a["actor_id"] for a in resolution.role_assignments)
        claims = tuple(f"{a['role_id']}={a['actor_id']}" for a in resolution.role_assignments)
    else:
        event_type = CASTING_FAILED
        actors = ()
        claims = tuple(f"unfillable:{role_id}" for role_id in resolution.unfillable_roles)
    return CastingEvent(
        event_id=f"evt_{uuid4().hex[:12]}",
        time=datetime.now(UTC),
        storylet_id=resolution.storylet_id,
        choice_id=resolution.choice_id,
        event_type=event_type,
        actors=actors,
        claims=claims,
    )


class EventBus:
    """Fan-out of casting outcomes to subscribers, counted by event type."""

    def __init__(self) -> None:
        self._handlers: list[CastingHandler] = []
        self._counter: Counter[str] = Counter()

    def subscribe(self, handler: CastingHandler) -> None:
        self._handlers.append(handler)

    def publish(self, resolution: ChoiceResolution) -> CastingEvent:
        event = casting_event_for(resolution)
        self._counter[event.event_type] += 1
        for handler in self._handlers:
            handler(event)
        return event

    def emitted_count(self, event_type: str | None = None) -> int:
        if event_type is None:
            return sum(self._counter.values())
        return self._counter[event_type]
