import logging
from typing import Callable

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from friendzone.db.models import Notification
from friendzone.knock.events import EventKind, RelationshipEvent

log = logging.getLogger("friendzone.notifications")

CONTENT = {
    EventKind.INVITE: "sent you a knock request.",
    EventKind.ONE_WAY_NOTICE: "knocked on you.",
    EventKind.MUTUAL_LOCK: "You are now LockedIn!",
    EventKind.ACCEPTED: "accepted your knock request.",
    EventKind.BROKEN: "is no longer locked in with you.",
}

# Events that retire the request notifications tied to a knock
CLEARS_REQUEST = {
    EventKind.MUTUAL_LOCK,
    EventKind.ACCEPTED,
    EventKind.DECLINED,
    EventKind.WITHDRAWN,
}


async def delete_notifications_for_knock(db: AsyncSession, knock_id: int) -> int:
    result = await db.execute(
        delete(Notification).where(
            Notification.knock_id == knock_id,
            Notification.kind == EventKind.INVITE.value,
        )
    )
    return result.rowcount or 0


class DatabaseNotifier:
    """Persists relationship events as notification rows.

    Runs in its own session so a failure here cannot touch the transaction
    that produced the event.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def dispatch(self, event: RelationshipEvent) -> None:
        async with self.session_factory() as db:
            if event.kind in CLEARS_REQUEST:
                for knock_id in event.edge_ids:
                    removed = await delete_notifications_for_knock(db, knock_id)
                    if removed:
                        log.debug("Cleared %d request notifications for knock %s", removed, knock_id)

            content = CONTENT.get(event.kind)
            if content is not None:
                db.add(Notification(
                    recipient_id=event.to_id,
                    sender_id=event.from_id,
                    kind=event.kind.value,
                    content=content,
                    knock_id=event.edge_id,
                ))
            await db.commit()
