import logging
from datetime import datetime, timezone

from sqlalchemy import select, update, delete, func, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from friendzone.db.models import Knock, KnockStatus
from friendzone.knock.errors import DuplicateEdgeError, StaleEdgeError

log = logging.getLogger("friendzone.knock.store")


class KnockStore:
    """Persistence for knock edges.

    Writes are conditional on the status the caller last read, so two-edge
    promotions re-validate both rows at write time. A zero rowcount means
    somebody else got there first and surfaces as ``StaleEdgeError``; the
    engine rolls back and replays the whole operation.

    The store never commits. Transaction boundaries belong to the engine.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, edge_id: int) -> Knock | None:
        return await self.db.scalar(select(Knock).where(Knock.id == edge_id))

    async def pair_of(self, edge_id: int) -> tuple[int, int] | None:
        row = (await self.db.execute(
            select(Knock.knocker_id, Knock.knocked_id).where(Knock.id == edge_id)
        )).first()
        return (row.knocker_id, row.knocked_id) if row else None

    async def get_between(self, from_id: int, to_id: int) -> Knock | None:
        return await self.db.scalar(
            select(Knock).where(
                Knock.knocker_id == from_id,
                Knock.knocked_id == to_id,
            )
        )

    async def insert(self, from_id: int, to_id: int, status: KnockStatus) -> Knock:
        edge = Knock(knocker_id=from_id, knocked_id=to_id, status=status)
        self.db.add(edge)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            log.info("Unique edge constraint hit for %s->%s", from_id, to_id)
            raise DuplicateEdgeError() from exc
        return edge

    async def set_status(self, edge: Knock, new_status: KnockStatus) -> Knock:
        expected = edge.status
        result = await self.db.execute(
            update(Knock)
            .where(Knock.id == edge.id, Knock.status == expected)
            .values(status=new_status, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleEdgeError(f"knock {edge.id} is no longer {expected.value}")
        set_committed_value(edge, "status", new_status)
        return edge

    async def remove(self, edge: Knock) -> None:
        result = await self.db.execute(
            delete(Knock)
            .where(Knock.id == edge.id, Knock.status == edge.status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleEdgeError(f"knock {edge.id} changed before delete")
        self.db.expunge(edge)

    # -- queries --

    async def list_incoming(self, user_id: int, status: KnockStatus | None = None) -> list[Knock]:
        q = select(Knock).where(Knock.knocked_id == user_id)
        if status is not None:
            q = q.where(Knock.status == status)
        res = await self.db.execute(q.order_by(Knock.created_at.desc(), Knock.id.desc()))
        return list(res.scalars().all())

    async def list_outgoing(self, user_id: int) -> list[Knock]:
        res = await self.db.execute(
            select(Knock)
            .where(Knock.knocker_id == user_id)
            .order_by(Knock.created_at.desc(), Knock.id.desc())
        )
        return list(res.scalars().all())

    async def count_incoming(self, user_id: int) -> int:
        return await self.db.scalar(
            select(func.count(Knock.id)).where(Knock.knocked_id == user_id)
        ) or 0

    async def count_outgoing(self, user_id: int) -> int:
        return await self.db.scalar(
            select(func.count(Knock.id)).where(Knock.knocker_id == user_id)
        ) or 0

    async def count_locked_in(self, user_id: int) -> int:
        return await self.db.scalar(
            select(func.count(Knock.id)).where(
                Knock.knocker_id == user_id,
                Knock.status == KnockStatus.LOCKED_IN,
            )
        ) or 0

    async def edges_between(self, a: int, b: int) -> list[Knock]:
        res = await self.db.execute(
            select(Knock).where(
                or_(
                    and_(Knock.knocker_id == a, Knock.knocked_id == b),
                    and_(Knock.knocker_id == b, Knock.knocked_id == a),
                )
            )
        )
        return list(res.scalars().all())
