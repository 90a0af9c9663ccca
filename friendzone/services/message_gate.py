"""Cold-outreach gate for private chats.

A private chat opened towards a private account that is not locked in with
the initiator starts as ``restricted_awaiting_reply``: the initiator may send
a single opening message, then has to wait. Either a reply from the
counterpart or a lock-in between the two users opens the chat for good.

The persisted ``gate_state`` only ever moves forward. Whether a restricted
chat is still restricted is decided on read from the live knock state and the
message log, so a lock-in that happened elsewhere is picked up without
anybody touching the chat row.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from friendzone.db.models import Chat, ChatGateState, Message
from friendzone.knock.engine import KnockEngine
from friendzone.knock.errors import ChatNotFoundError, ChatRestrictedError

log = logging.getLogger("friendzone.gate")


@dataclass
class AccessDecision:
    allow: bool
    is_restricted: bool
    is_locked_in: bool
    opened_by: int | None
    state: ChatGateState
    next_state: ChatGateState
    reason: str | None = None


class MessageGate:

    def __init__(self, db: AsyncSession, engine: KnockEngine | None = None):
        self.db = db
        self.engine = engine or KnockEngine(db)

    async def gate_for_new_chat(self, initiator_id: int, recipient_id: int) -> tuple[ChatGateState, int | None]:
        """Initial gate state and opener for a fresh private chat."""
        if not await self.engine.directory.is_private(recipient_id):
            return ChatGateState.OPEN, None
        if await self.engine.is_locked_in(initiator_id, recipient_id):
            return ChatGateState.OPEN, None
        return ChatGateState.RESTRICTED_AWAITING_REPLY, initiator_id

    async def _opener_has_sent(self, chat: Chat) -> bool:
        sent = await self.db.scalar(
            select(func.count(Message.id)).where(
                Message.chat_id == chat.id,
                Message.sender_id == chat.opened_by,
            )
        )
        return bool(sent)

    async def compute_access(self, chat: Chat, sender_id: int) -> AccessDecision:
        """Decide whether ``sender_id`` may send into ``chat`` right now.

        ``state`` is the effective state before the send, ``next_state`` the
        state the chat moves to if the send goes through.
        """
        counterpart_id = chat.counterpart_of(sender_id)
        if counterpart_id is None:
            raise ChatNotFoundError()

        locked_in = await self.engine.is_locked_in(sender_id, counterpart_id)
        state = chat.gate_state

        if state is not ChatGateState.RESTRICTED_AWAITING_REPLY:
            return AccessDecision(True, False, locked_in, chat.opened_by, state, state)

        if locked_in:
            return AccessDecision(
                True, False, True, chat.opened_by,
                ChatGateState.LOCKED_OPEN, ChatGateState.LOCKED_OPEN,
            )

        if sender_id == chat.opened_by:
            if await self._opener_has_sent(chat):
                return AccessDecision(
                    allow=False,
                    is_restricted=True,
                    is_locked_in=False,
                    opened_by=chat.opened_by,
                    state=state,
                    next_state=state,
                    reason=ChatRestrictedError.default_message,
                )
            return AccessDecision(True, True, False, chat.opened_by, state, state)

        # The counterpart replying lifts the restriction for both sides
        return AccessDecision(True, True, False, chat.opened_by, state, ChatGateState.LOCKED_OPEN)

    async def authorize_send(self, chat: Chat, sender_id: int) -> AccessDecision:
        """compute_access plus the forward transition. Caller commits."""
        decision = await self.compute_access(chat, sender_id)
        if not decision.allow:
            log.info("Blocked repeat opener message from %s in restricted chat %s", sender_id, chat.id)
            raise ChatRestrictedError()

        if decision.next_state is not chat.gate_state:
            log.info("Chat %s: %s -> %s", chat.id, chat.gate_state.value, decision.next_state.value)
            chat.gate_state = decision.next_state
        return decision
