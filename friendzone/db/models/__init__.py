"""
SQLAlchemy database models.

- base: Base declarative class
- user: User accounts and the privacy flag
- knock: Directed knock edges and their status enum
- chat: Chats, gate markers and messages
- notification: Persisted relationship notifications

Import any model from this module:
    from friendzone.db.models import User, Knock, Chat, Message
"""

from .base import Base

from .user import User

from .knock import Knock, KnockStatus

from .chat import Chat, ChatGateState, Message, pair_key

from .notification import Notification

__all__ = [
    "Base",
    "User",
    "Knock",
    "KnockStatus",
    "Chat",
    "ChatGateState",
    "Message",
    "pair_key",
    "Notification",
]
