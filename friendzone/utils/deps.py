from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from friendzone.db.models import User
from friendzone.db.session import get_db
from friendzone.core.config import settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    return jwt.encode({"sub": str(user_id), "exp": expire}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id: str | None = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = await db.get(User, int(user_id))
    if user is None:
        raise credentials_exception

    return user


def get_notifier():
    # Imported here so the knock engine does not depend on the notification store
    from friendzone.db.session import SessionLocal
    from friendzone.knock.events import LoggingNotifier
    from friendzone.services.notifications import DatabaseNotifier

    if settings.NOTIFICATIONS_ENABLED:
        return DatabaseNotifier(SessionLocal)
    return LoggingNotifier()


def get_knock_engine(
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
):
    from friendzone.knock.engine import KnockEngine
    from friendzone.utils.concurrency import knock_pair_lock

    return KnockEngine(db, notifier=notifier, pair_lock=knock_pair_lock)
