from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from friendzone.db.models import User
from friendzone.db.session import get_db
from friendzone.schemas.chat import (
    AccessOut,
    ChatCreateRequest,
    ChatOut,
    ChatSummaryOut,
    MessageCreateRequest,
    MessageOut,
    SentMessageOut,
)
from friendzone.services.chat_service import (
    create_private_chat,
    get_access,
    list_chats,
    list_messages,
    send_message,
)
from friendzone.utils.deps import get_current_user

router = APIRouter(prefix="/chats", tags=["chats"])


@router.get("", response_model=list[ChatSummaryOut])
async def my_chats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    chats = await list_chats(db, user.id, limit=limit, offset=offset)
    return [
        ChatSummaryOut(
            chat_id=chat.id,
            counterpart_id=chat.counterpart_of(user.id),
            created_at=chat.created_at,
            last_message_at=chat.last_message_at,
            access=AccessOut.model_validate(access),
        )
        for chat, access in chats
    ]


@router.post("", response_model=ChatOut)
async def start_chat(
    data: ChatCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    chat, created = await create_private_chat(db, user.id, data.recipient_id)
    access = await get_access(db, chat.id, user.id)
    return ChatOut(chat_id=chat.id, created=created, access=AccessOut.model_validate(access))


@router.get("/{chat_id}/access", response_model=AccessOut)
async def chat_access(
    chat_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await get_access(db, chat_id, user.id)


@router.post("/{chat_id}/messages", response_model=SentMessageOut, status_code=201)
async def post_message(
    chat_id: str,
    data: MessageCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    message, _ = await send_message(db, chat_id, user.id, data.text)
    # Report the gate as it stands after this message
    access = await get_access(db, chat_id, user.id)
    return SentMessageOut(
        message=MessageOut.model_validate(message),
        access=AccessOut.model_validate(access),
    )


@router.get("/{chat_id}/messages", response_model=list[MessageOut])
async def get_messages(
    chat_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    return await list_messages(db, chat_id, user.id, limit=limit, offset=offset)
