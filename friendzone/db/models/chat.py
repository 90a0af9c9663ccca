"""Chat and messaging database models."""

import enum
from datetime import datetime, timezone

from sqlalchemy import Integer, String, Text, ForeignKey, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class ChatGateState(str, enum.Enum):
    OPEN = "open"
    RESTRICTED_AWAITING_REPLY = "restricted_awaiting_reply"
    LOCKED_OPEN = "locked_open"


def pair_key(a: int, b: int) -> str:
    lo, hi = sorted((a, b))
    return f"{lo}:{hi}"


class Chat(Base):
    """Private conversation between two users, unique per user pair."""
    
    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    initiator_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    pair_key: Mapped[str] = mapped_column(String, unique=True)

    # Restriction markers; see friendzone.services.message_gate
    gate_state: Mapped[ChatGateState] = mapped_column(
        Enum(ChatGateState, name="chat_gate_state", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=ChatGateState.OPEN,
    )
    opened_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), 
        default=lambda: datetime.now(timezone.utc)
    )
    last_message_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    messages = relationship("Message", back_populates="chat", cascade="all, delete-orphan")

    def participants(self) -> tuple[int, int]:
        return (self.initiator_id, self.recipient_id)

    def counterpart_of(self, user_id: int) -> int | None:
        if user_id == self.initiator_id:
            return self.recipient_id
        if user_id == self.recipient_id:
            return self.initiator_id
        return None


class Message(Base):
    """Individual message in a chat."""
    
    __tablename__ = "messages"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chat_id: Mapped[str] = mapped_column(ForeignKey("chats.id", ondelete="CASCADE"), index=True)
    sender_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    text: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    
    # Relationships
    chat = relationship("Chat", back_populates="messages")
