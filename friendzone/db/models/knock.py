"""Knock edges: directed relationship records between two users."""

import enum
from datetime import datetime, timezone

from sqlalchemy import Integer, ForeignKey, DateTime, Enum, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class KnockStatus(str, enum.Enum):
    PENDING = "pending"
    ONESIDED = "onesided"
    LOCKED_IN = "locked_in"


class Knock(Base):
    """One directed edge knocker -> knocked. At most one row per ordered pair."""

    __tablename__ = "knocks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    knocker_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    knocked_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    status: Mapped[KnockStatus] = mapped_column(
        Enum(
            KnockStatus,
            name="knock_status",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=KnockStatus.PENDING,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_knocks_knocker_knocked", "knocker_id", "knocked_id", unique=True),
        CheckConstraint("knocker_id <> knocked_id", name="ck_knocks_not_self"),
    )

    def __repr__(self) -> str:
        return f"<Knock {self.id} {self.knocker_id}->{self.knocked_id} {self.status.value}>"
