from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from friendzone.db.models import Knock, KnockStatus, User


async def status_of(db: AsyncSession, from_id: int, to_id: int) -> KnockStatus | None:
    return await db.scalar(
        select(Knock.status).where(Knock.knocker_id == from_id, Knock.knocked_id == to_id)
    )


async def edge_id_of(db: AsyncSession, from_id: int, to_id: int) -> int | None:
    return await db.scalar(
        select(Knock.id).where(Knock.knocker_id == from_id, Knock.knocked_id == to_id)
    )


async def set_private(db: AsyncSession, user_id: int, is_private: bool) -> None:
    await db.execute(update(User).where(User.id == user_id).values(is_private=is_private))
    await db.commit()


async def assert_edge_invariants(db: AsyncSession) -> None:
    """Uniqueness per ordered pair and lock-in symmetry."""
    rows = (await db.execute(select(Knock.knocker_id, Knock.knocked_id, Knock.status))).all()
    pairs = [(r.knocker_id, r.knocked_id) for r in rows]
    assert len(pairs) == len(set(pairs)), f"duplicate edges: {pairs}"

    by_pair = {(r.knocker_id, r.knocked_id): r.status for r in rows}
    for (src, dst), status in by_pair.items():
        if status is KnockStatus.LOCKED_IN:
            assert by_pair.get((dst, src)) is KnockStatus.LOCKED_IN, (
                f"locked_in {src}->{dst} without locked_in reciprocal: {by_pair}"
            )
