import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

log = logging.getLogger("friendzone.knock.events")


class EventKind(str, enum.Enum):
    INVITE = "invite"
    ONE_WAY_NOTICE = "one_way_notice"
    MUTUAL_LOCK = "mutual_lock"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    BROKEN = "broken"
    WITHDRAWN = "withdrawn"


@dataclass(frozen=True)
class RelationshipEvent:
    kind: EventKind
    from_id: int
    to_id: int
    edge_id: int | None
    # Other edges whose state changed with this event, e.g. the reverse side of a lock-in
    related_edge_ids: tuple[int, ...] = ()
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def edge_ids(self) -> tuple[int, ...]:
        ids = () if self.edge_id is None else (self.edge_id,)
        return ids + self.related_edge_ids


class Notifier(Protocol):
    async def dispatch(self, event: RelationshipEvent) -> None: ...


class LoggingNotifier:
    """Notifier that only records events in the log."""

    async def dispatch(self, event: RelationshipEvent) -> None:
        log.info(
            "relationship event kind=%s from=%s to=%s edge=%s",
            event.kind.value, event.from_id, event.to_id, event.edge_id,
        )


class RecordingNotifier:
    """Keeps every dispatched event in memory. Used by tests and local tooling."""

    def __init__(self):
        self.events: list[RelationshipEvent] = []

    async def dispatch(self, event: RelationshipEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[EventKind]:
        return [e.kind for e in self.events]


async def emit(notifier: Notifier | None, events: list[RelationshipEvent]) -> None:
    """Fire-and-forget dispatch: a failing notifier never fails the caller."""
    if notifier is None:
        return
    for event in events:
        try:
            await notifier.dispatch(event)
        except Exception:
            log.exception(
                "Notifier failed for %s %s->%s (edge=%s)",
                event.kind.value, event.from_id, event.to_id, event.edge_id,
            )
