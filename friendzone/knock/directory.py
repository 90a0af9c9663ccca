from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from friendzone.db.models import User


class UserDirectory(Protocol):
    async def exists(self, user_id: int) -> bool: ...

    async def is_private(self, user_id: int) -> bool: ...


class SqlUserDirectory:
    """Reads existence and the privacy flag from the users table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, user_id: int) -> bool:
        found = await self.db.scalar(select(User.id).where(User.id == user_id))
        return found is not None

    async def is_private(self, user_id: int) -> bool:
        flag = await self.db.scalar(select(User.is_private).where(User.id == user_id))
        return bool(flag)
