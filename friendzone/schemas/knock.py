from datetime import datetime
from pydantic import BaseModel

from friendzone.db.models import KnockStatus


class KnockCreateRequest(BaseModel):
    knocked_id: int


class BreakLockRequest(BaseModel):
    counterpart_id: int


class KnockOut(BaseModel):
    id: int
    knocker_id: int
    knocked_id: int
    status: KnockStatus
    created_at: datetime

    class Config:
        from_attributes = True


class KnockBackResponse(BaseModel):
    message: str
    locked: list[KnockOut]


class KnockCountsOut(BaseModel):
    incoming_count: int
    outgoing_count: int
    locked_in_count: int


class RelationshipOut(BaseModel):
    user_id: int
    outgoing: KnockOut | None = None
    incoming: KnockOut | None = None
    is_locked_in: bool
