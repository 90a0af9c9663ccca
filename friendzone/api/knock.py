from fastapi import APIRouter, Depends

from friendzone.db.models import KnockStatus, User
from friendzone.knock.engine import KnockEngine
from friendzone.schemas.knock import (
    BreakLockRequest,
    KnockBackResponse,
    KnockCountsOut,
    KnockCreateRequest,
    KnockOut,
    RelationshipOut,
)
from friendzone.utils.deps import get_current_user, get_knock_engine

router = APIRouter(prefix="/knocks", tags=["knocks"])


@router.post("", response_model=KnockOut, status_code=201)
async def knock_user(
    data: KnockCreateRequest,
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    return await engine.knock(user.id, data.knocked_id)


@router.put("/{knock_id}/knockback", response_model=KnockBackResponse)
async def knock_back(
    knock_id: int,
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    edges = await engine.knock_back(user.id, knock_id)
    locked = all(e.status is KnockStatus.LOCKED_IN for e in edges)
    return KnockBackResponse(
        message="Knocked back. You are now LockedIn!" if locked else "Knock request sent.",
        locked=[KnockOut.model_validate(e) for e in edges],
    )


@router.put("/{knock_id}/accept", response_model=KnockOut)
async def accept_knock(
    knock_id: int,
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    return await engine.accept(user.id, knock_id)


@router.put("/{knock_id}/decline")
async def decline_knock(
    knock_id: int,
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    await engine.decline(user.id, knock_id)
    return {"message": "Knock declined.", "declined_id": knock_id}


@router.delete("/{knock_id}/unknock")
async def unknock_user(
    knock_id: int,
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    await engine.remove(user.id, knock_id)
    return {"message": "Knock removed.", "removed_id": knock_id}


@router.post("/break-lock")
async def break_lock(
    data: BreakLockRequest,
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    await engine.break_lock(user.id, data.counterpart_id)
    return {"ok": True, "message": "Lock broken."}


@router.get("/knockers", response_model=list[KnockOut])
async def get_knockers(
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    return await engine.list_incoming(user.id)


@router.get("/knocked", response_model=list[KnockOut])
async def get_knocked(
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    return await engine.list_outgoing(user.id)


@router.get("/pending", response_model=list[KnockOut])
async def get_pending_knock_requests(
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    return await engine.list_pending(user.id)


@router.get("/knockers-for-user/{user_id}", response_model=list[KnockOut])
async def get_knockers_for_user(
    user_id: int,
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    return await engine.list_incoming_for(user.id, user_id)


@router.get("/counts/{user_id}", response_model=KnockCountsOut)
async def get_counts_for_user(
    user_id: int,
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    counts = await engine.counts(user_id)
    return KnockCountsOut(
        incoming_count=counts.incoming_count,
        outgoing_count=counts.outgoing_count,
        locked_in_count=counts.locked_in_count,
    )


@router.get("/relationship/{user_id}", response_model=RelationshipOut)
async def get_relationship(
    user_id: int,
    engine: KnockEngine = Depends(get_knock_engine),
    user: User = Depends(get_current_user),
):
    summary = await engine.relationship_between(user.id, user_id)
    return RelationshipOut(
        user_id=user_id,
        outgoing=KnockOut.model_validate(summary.outgoing) if summary.outgoing else None,
        incoming=KnockOut.model_validate(summary.incoming) if summary.incoming else None,
        is_locked_in=summary.is_locked_in,
    )
