from pydantic import BaseModel, Field
from datetime import datetime

from friendzone.db.models import ChatGateState


class ChatCreateRequest(BaseModel):
    recipient_id: int


class MessageCreateRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=4000)


class AccessOut(BaseModel):
    allow: bool
    is_restricted: bool
    is_locked_in: bool
    opened_by: int | None = None
    state: ChatGateState
    reason: str | None = None

    class Config:
        from_attributes = True


class ChatOut(BaseModel):
    chat_id: str
    created: bool
    access: AccessOut


class MessageOut(BaseModel):
    id: int
    chat_id: str
    sender_id: int
    text: str
    created_at: datetime

    class Config:
        from_attributes = True


class SentMessageOut(BaseModel):
    message: MessageOut
    access: AccessOut


class ChatSummaryOut(BaseModel):
    chat_id: str
    counterpart_id: int
    created_at: datetime
    last_message_at: datetime
    access: AccessOut
