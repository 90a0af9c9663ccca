import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from friendzone.db.models import Chat, Message, pair_key
from friendzone.knock.errors import ChatNotFoundError, SelfTargetError, TargetNotFoundError
from friendzone.services.message_gate import AccessDecision, MessageGate

log = logging.getLogger("friendzone.chat")


async def get_private_chat(db: AsyncSession, user_a: int, user_b: int) -> Chat | None:
    result = await db.execute(
        select(Chat).where(Chat.pair_key == pair_key(user_a, user_b))
    )
    return result.scalar_one_or_none()


async def create_private_chat(
    db: AsyncSession,
    initiator_id: int,
    recipient_id: int,
    gate: MessageGate | None = None,
) -> tuple[Chat, bool]:
    """Return the pair's private chat, creating it if missing. Second item is True when created."""
    if initiator_id == recipient_id:
        raise SelfTargetError("You cannot start a chat with yourself.")

    gate = gate or MessageGate(db)
    if not await gate.engine.directory.exists(recipient_id):
        raise TargetNotFoundError("Recipient user not found.")

    existing = await get_private_chat(db, initiator_id, recipient_id)
    if existing:
        return existing, False

    gate_state, opened_by = await gate.gate_for_new_chat(initiator_id, recipient_id)
    now = datetime.now(timezone.utc)
    chat = Chat(
        id=str(uuid.uuid4()),
        initiator_id=initiator_id,
        recipient_id=recipient_id,
        pair_key=pair_key(initiator_id, recipient_id),
        gate_state=gate_state,
        opened_by=opened_by,
        created_at=now,
        last_message_at=now,
    )
    db.add(chat)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_private_chat(db, initiator_id, recipient_id)
        if existing:
            return existing, False
        raise
    except Exception:
        await db.rollback()
        raise

    log.info("Private chat %s created %s->%s (%s)", chat.id, initiator_id, recipient_id, gate_state.value)
    return chat, True


async def load_chat_for(db: AsyncSession, chat_id: str, user_id: int, for_update: bool = False) -> Chat:
    q = select(Chat).where(Chat.id == chat_id)
    if for_update:
        q = q.with_for_update()
    chat = await db.scalar(q)
    if chat is None or user_id not in chat.participants():
        raise ChatNotFoundError()
    return chat


async def get_access(db: AsyncSession, chat_id: str, user_id: int, gate: MessageGate | None = None) -> AccessDecision:
    chat = await load_chat_for(db, chat_id, user_id)
    return await (gate or MessageGate(db)).compute_access(chat, user_id)


async def send_message(
    db: AsyncSession,
    chat_id: str,
    sender_id: int,
    text: str,
    gate: MessageGate | None = None,
) -> tuple[Message, AccessDecision]:
    gate = gate or MessageGate(db)
    try:
        # Row lock keeps two opener messages from both passing the gate
        chat = await load_chat_for(db, chat_id, sender_id, for_update=True)
        decision = await gate.authorize_send(chat, sender_id)

        message = Message(chat_id=chat.id, sender_id=sender_id, text=text)
        db.add(message)
        await db.flush()
        chat.last_message_at = message.created_at
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(message)
    return message, decision


async def list_messages(
    db: AsyncSession,
    chat_id: str,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
) -> list[Message]:
    await load_chat_for(db, chat_id, user_id)
    result = await db.execute(
        select(Message)
        .where(Message.chat_id == chat_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_chats(
    db: AsyncSession,
    user_id: int,
    limit: int = 10,
    offset: int = 0,
    gate: MessageGate | None = None,
) -> list[tuple[Chat, AccessDecision]]:
    """The user's chats, most recently active first, each with its gate as seen by that user."""
    gate = gate or MessageGate(db)
    result = await db.execute(
        select(Chat)
        .where(or_(Chat.initiator_id == user_id, Chat.recipient_id == user_id))
        .order_by(Chat.last_message_at.desc(), Chat.id.asc())
        .offset(offset)
        .limit(limit)
    )
    return [(chat, await gate.compute_access(chat, user_id)) for chat in result.scalars().all()]
