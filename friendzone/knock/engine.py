"""Knock handshake transitions.

Every public operation is one read-modify-write transaction against the
store: re-read the current edges, decide, write, commit, then hand the
resulting events to the notifier. Promotions to ``locked_in`` always write
both directions inside that same transaction.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import AsyncContextManager, Awaitable, Callable, Union

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from friendzone.core.config import settings
from friendzone.db.models import Knock, KnockStatus, pair_key
from friendzone.knock.directory import SqlUserDirectory, UserDirectory
from friendzone.knock.errors import (
    DuplicateEdgeError,
    EdgeNotFoundOrNotEligibleError,
    KnockError,
    ProfileHiddenError,
    SelfTargetError,
    StaleEdgeError,
    StoreUnavailableError,
    TargetNotFoundError,
)
from friendzone.knock.events import EventKind, Notifier, RelationshipEvent, emit
from friendzone.knock.store import KnockStore

log = logging.getLogger("friendzone.knock")

PairLock = Callable[[str], AsyncContextManager]
PairKey = Union[str, Callable[[], Awaitable[str]]]

RETRYABLE = (StaleEdgeError, OperationalError, TimeoutError)


def _no_lock(name: str) -> AsyncContextManager:
    return contextlib.nullcontext()


@dataclass
class KnockCounts:
    incoming_count: int
    outgoing_count: int
    locked_in_count: int


@dataclass
class RelationshipSummary:
    outgoing: Knock | None
    incoming: Knock | None

    @property
    def is_locked_in(self) -> bool:
        return (
            self.outgoing is not None
            and self.incoming is not None
            and self.outgoing.status is KnockStatus.LOCKED_IN
            and self.incoming.status is KnockStatus.LOCKED_IN
        )


class KnockEngine:

    def __init__(
        self,
        db: AsyncSession,
        directory: UserDirectory | None = None,
        notifier: Notifier | None = None,
        pair_lock: PairLock | None = None,
        attempts: int | None = None,
        retry_delay: float | None = None,
    ):
        self.db = db
        self.store = KnockStore(db)
        self.directory = directory or SqlUserDirectory(db)
        self.notifier = notifier
        self.pair_lock = pair_lock or _no_lock
        self.attempts = max(1, attempts if attempts is not None else settings.KNOCK_WRITE_ATTEMPTS)
        self.retry_delay = retry_delay if retry_delay is not None else settings.KNOCK_RETRY_DELAY

    # ------------------------------------------------------------------
    # transaction runner
    # ------------------------------------------------------------------

    async def _run(
        self,
        op: str,
        pair: PairKey,
        txn: Callable[[], Awaitable[tuple[object, list[RelationshipEvent]]]],
    ):
        """Run ``txn`` in a transaction under the pair lock, replaying it on transient faults.

        ``pair`` is either the pair key or a coroutine function resolving it,
        so lookups needed to find the pair are retried as well.
        """
        for attempt in range(1, self.attempts + 1):
            key = pair if isinstance(pair, str) else None
            try:
                if key is None:
                    key = await pair()
                async with self.pair_lock(key):
                    result, events = await txn()
                    await self.db.commit()
            except KnockError:
                await self.db.rollback()
                raise
            except IntegrityError as exc:
                await self.db.rollback()
                raise DuplicateEdgeError() from exc
            except RETRYABLE as exc:
                await self.db.rollback()
                if attempt >= self.attempts:
                    log.error("%s on pair %s failed after %d attempts: %s", op, key, attempt, exc)
                    raise StoreUnavailableError() from exc
                log.warning("%s on pair %s hit a transient fault (attempt %d): %s", op, key, attempt, exc)
                await asyncio.sleep(self.retry_delay * attempt)
                continue
            except Exception:
                await self.db.rollback()
                raise

            await emit(self.notifier, events)
            return result

    async def _edge_pair(self, edge_id: int) -> str:
        pair = await self.store.pair_of(edge_id)
        if pair is None:
            raise EdgeNotFoundOrNotEligibleError()
        return pair_key(*pair)

    async def _lock_both(self, edge: Knock, reverse: Knock) -> None:
        await self.store.set_status(edge, KnockStatus.LOCKED_IN)
        await self.store.set_status(reverse, KnockStatus.LOCKED_IN)

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------

    async def knock(self, from_id: int, to_id: int) -> Knock:
        if from_id == to_id:
            raise SelfTargetError()

        async def txn():
            if not await self.directory.exists(to_id):
                raise TargetNotFoundError()
            if await self.store.get_between(from_id, to_id) is not None:
                raise DuplicateEdgeError()

            reverse = await self.store.get_between(to_id, from_id)
            to_private = await self.directory.is_private(to_id)
            from_private = await self.directory.is_private(from_id)

            if to_private:
                edge = await self.store.insert(from_id, to_id, KnockStatus.PENDING)
                kind = EventKind.INVITE
            elif reverse is not None and not from_private:
                edge = await self.store.insert(from_id, to_id, KnockStatus.LOCKED_IN)
                await self.store.set_status(reverse, KnockStatus.LOCKED_IN)
                kind = EventKind.MUTUAL_LOCK
            else:
                edge = await self.store.insert(from_id, to_id, KnockStatus.ONESIDED)
                kind = EventKind.ONE_WAY_NOTICE

            log.info("knock %s->%s: %s", from_id, to_id, edge.status.value)
            related = (reverse.id,) if kind is EventKind.MUTUAL_LOCK else ()
            return edge, [RelationshipEvent(kind, from_id, to_id, edge.id, related)]

        return await self._run("knock", pair_key(from_id, to_id), txn)

    async def knock_back(self, actor_id: int, edge_id: int) -> list[Knock]:
        async def txn():
            edge = await self.store.get(edge_id)
            if edge is None or edge.status is not KnockStatus.ONESIDED or edge.knocked_id != actor_id:
                raise EdgeNotFoundOrNotEligibleError()

            origin_id = edge.knocker_id
            reverse = await self.store.get_between(actor_id, origin_id)

            if await self.directory.is_private(origin_id):
                if reverse is not None and reverse.status is KnockStatus.PENDING:
                    await self._lock_both(edge, reverse)
                    log.info("knock-back %s->%s: locked in", actor_id, origin_id)
                    return [edge, reverse], [
                        RelationshipEvent(EventKind.MUTUAL_LOCK, actor_id, origin_id, edge.id, (reverse.id,))
                    ]
                if reverse is not None:
                    raise DuplicateEdgeError()
                request = await self.store.insert(actor_id, origin_id, KnockStatus.PENDING)
                log.info("knock-back %s->%s: request sent to private account", actor_id, origin_id)
                return [request], [
                    RelationshipEvent(EventKind.INVITE, actor_id, origin_id, request.id)
                ]

            await self.store.set_status(edge, KnockStatus.LOCKED_IN)
            if reverse is None:
                reverse = await self.store.insert(actor_id, origin_id, KnockStatus.LOCKED_IN)
            else:
                await self.store.set_status(reverse, KnockStatus.LOCKED_IN)
            log.info("knock-back %s->%s: locked in", actor_id, origin_id)
            return [edge, reverse], [
                RelationshipEvent(EventKind.MUTUAL_LOCK, actor_id, origin_id, edge.id, (reverse.id,))
            ]

        return await self._run("knock_back", lambda: self._edge_pair(edge_id), txn)

    async def accept(self, actor_id: int, edge_id: int) -> Knock:
        async def txn():
            edge = await self.store.get(edge_id)
            if edge is None or edge.status is not KnockStatus.PENDING or edge.knocked_id != actor_id:
                raise EdgeNotFoundOrNotEligibleError()

            origin_id = edge.knocker_id
            reverse = await self.store.get_between(actor_id, origin_id)
            origin_private = await self.directory.is_private(origin_id)
            actor_private = await self.directory.is_private(actor_id)

            if self._accept_locks_in(reverse, origin_private, actor_private):
                await self._lock_both(edge, reverse)
                event = RelationshipEvent(EventKind.MUTUAL_LOCK, actor_id, origin_id, edge.id, (reverse.id,))
            else:
                await self.store.set_status(edge, KnockStatus.ONESIDED)
                event = RelationshipEvent(EventKind.ACCEPTED, actor_id, origin_id, edge.id)

            log.info("accept %s<-%s: %s", actor_id, origin_id, edge.status.value)
            return edge, [event]

        return await self._run("accept", lambda: self._edge_pair(edge_id), txn)

    @staticmethod
    def _accept_locks_in(reverse: Knock | None, origin_private: bool, actor_private: bool) -> bool:
        if reverse is None:
            return False
        if reverse.status is KnockStatus.ONESIDED:
            return True
        if origin_private and actor_private:
            return reverse.status is KnockStatus.PENDING
        if not origin_private and actor_private:
            return reverse.status is KnockStatus.PENDING
        # Private origin accepted by a public actor has no promotion rule:
        # the request becomes one-sided and nothing is reciprocated.
        return False

    async def decline(self, actor_id: int, edge_id: int) -> None:
        async def txn():
            edge = await self.store.get(edge_id)
            if edge is None or edge.status is not KnockStatus.PENDING or edge.knocked_id != actor_id:
                raise EdgeNotFoundOrNotEligibleError()
            origin_id = edge.knocker_id
            await self.store.remove(edge)
            log.info("decline %s<-%s (knock %s)", actor_id, origin_id, edge_id)
            return None, [RelationshipEvent(EventKind.DECLINED, actor_id, origin_id, edge_id)]

        return await self._run("decline", lambda: self._edge_pair(edge_id), txn)

    async def remove(self, actor_id: int, edge_id: int) -> None:
        """Withdraw a knock the actor sent. Locked-in edges go through break_lock."""
        async def txn():
            edge = await self.store.get(edge_id)
            if (
                edge is None
                or edge.knocker_id != actor_id
                or edge.status not in (KnockStatus.PENDING, KnockStatus.ONESIDED)
            ):
                raise EdgeNotFoundOrNotEligibleError()
            target_id = edge.knocked_id
            await self.store.remove(edge)
            log.info("unknock %s->%s (knock %s)", actor_id, target_id, edge_id)
            return None, [RelationshipEvent(EventKind.WITHDRAWN, actor_id, target_id, edge_id)]

        return await self._run("remove", lambda: self._edge_pair(edge_id), txn)

    unknock = remove

    async def break_lock(self, actor_id: int, counterpart_id: int) -> None:
        async def txn():
            outgoing = await self.store.get_between(actor_id, counterpart_id)
            incoming = await self.store.get_between(counterpart_id, actor_id)
            if (
                outgoing is None
                or incoming is None
                or outgoing.status is not KnockStatus.LOCKED_IN
                or incoming.status is not KnockStatus.LOCKED_IN
            ):
                raise EdgeNotFoundOrNotEligibleError("You are not locked in with this user.")
            edge_id = outgoing.id
            await self.store.set_status(incoming, KnockStatus.ONESIDED)
            await self.store.remove(outgoing)
            log.info("break-lock %s->%s", actor_id, counterpart_id)
            return None, [RelationshipEvent(EventKind.BROKEN, actor_id, counterpart_id, edge_id)]

        return await self._run("break_lock", pair_key(actor_id, counterpart_id), txn)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    async def list_incoming(self, user_id: int) -> list[Knock]:
        return await self.store.list_incoming(user_id)

    async def list_outgoing(self, user_id: int) -> list[Knock]:
        return await self.store.list_outgoing(user_id)

    async def list_pending(self, user_id: int) -> list[Knock]:
        return await self.store.list_incoming(user_id, status=KnockStatus.PENDING)

    async def counts(self, user_id: int) -> KnockCounts:
        return KnockCounts(
            incoming_count=await self.store.count_incoming(user_id),
            outgoing_count=await self.store.count_outgoing(user_id),
            locked_in_count=await self.store.count_locked_in(user_id),
        )

    async def relationship_between(self, viewer_id: int, other_id: int) -> RelationshipSummary:
        outgoing = incoming = None
        for edge in await self.store.edges_between(viewer_id, other_id):
            if edge.knocker_id == viewer_id:
                outgoing = edge
            else:
                incoming = edge
        return RelationshipSummary(outgoing=outgoing, incoming=incoming)

    async def is_locked_in(self, a: int, b: int) -> bool:
        return (await self.relationship_between(a, b)).is_locked_in

    async def list_incoming_for(self, viewer_id: int, user_id: int) -> list[Knock]:
        """Another user's knockers, visible unless the account is private and not locked in."""
        if viewer_id != user_id:
            if not await self.directory.exists(user_id):
                raise TargetNotFoundError()
            if await self.directory.is_private(user_id) and not await self.is_locked_in(viewer_id, user_id):
                raise ProfileHiddenError()
        return await self.store.list_incoming(user_id)
