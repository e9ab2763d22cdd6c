from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.errors import ValidationFailed
from app.db.session import get_db
from app.schemas.ledger import (
    MissionCompletedRequest,
    MissionCompletedResponse,
    MissionCompletionItem,
    MissionHistoryResponse,
    UserStateResponse,
)
from app.services.ledger import get_state, list_mission_completions, record_mission_completion

router = APIRouter()
group_tags: List[str | Enum] = ["app"]


"""
local bookkeeping of mission rewards

tables: wallets, user_state, mission_completions (see app.services.ledger)
credits / reputation are application rewards, unrelated to the on-chain balance
"""


def _require_addr(addr: str) -> str:
    addr = addr.strip()
    if not addr:
        raise ValidationFailed("addr required")
    return addr


@router.get(
    "/user/{addr}/state",
    tags=group_tags,
    response_model=UserStateResponse,
    status_code=status.HTTP_200_OK,
)
def get_user_state(addr: str, db: Session = Depends(get_db)) -> UserStateResponse:
    """
    Credits and reputation of a wallet address.

    An address that never completed a mission answers with zeros.
    """
    addr = _require_addr(addr)
    state = get_state(db, addr)
    return UserStateResponse(
        addr=addr,
        credits=state.credits,
        reputation=state.reputation,
    )


@router.get(
    "/user/{addr}/missions",
    tags=group_tags,
    response_model=MissionHistoryResponse,
    status_code=status.HTTP_200_OK,
)
def get_user_missions(
    addr: str,
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of missions to return, default: 20, max: 100"),
    offset: int = Query(default=0, ge=0, description="Number of missions to skip for pagination, default: 0"),
    db: Session = Depends(get_db),
) -> MissionHistoryResponse:
    """
    Mission completions of a wallet address, newest first.

    Query Parameters:
    - limit: Maximum number of missions to return (default: 20, max: 100)
    - offset: Number of missions to skip for pagination (default: 0)
    """
    addr = _require_addr(addr)
    items, total = list_mission_completions(db, addr, limit=limit, offset=offset)
    missions = [
        MissionCompletionItem(
            id=item.id,
            missionId=item.mission_id,
            report=item.report,
            reward=item.reward,
            reputation=item.reputation,
            createdAt=item.created_at,
        )
        for item in items
    ]
    return MissionHistoryResponse(
        addr=addr,
        missions=missions,
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/mission/completed",
    tags=group_tags,
    response_model=MissionCompletedResponse,
    status_code=status.HTTP_200_OK,
)
def mission_completed(
    payload: Optional[MissionCompletedRequest] = None,
    db: Session = Depends(get_db),
) -> MissionCompletedResponse:
    """
    Record a completed mission and credit its reward.

    Payload:
    - addr: Wallet address (required)
    - missionId: Mission identifier (required)
    - reward: Credits to add (optional, default 0)
    - reputation: Reputation to add (optional, default 0)
    - report: Free-text report (optional)

    Repeating the same call records the mission again and credits it again.

    *Sample request body:*
    {
        "addr": "FoNe1q9x...walletaddress",
        "missionId": "plant-a-tree",
        "reward": 10,
        "reputation": 5,
        "report": "planted 3 trees at the park"
    }
    """
    payload = payload or MissionCompletedRequest()
    addr = (payload.addr or "").strip()
    mission_id = str(payload.missionId).strip() if payload.missionId is not None else ""
    if not addr or not mission_id:
        raise ValidationFailed("addr and missionId are required")

    record_mission_completion(
        db,
        addr,
        mission_id,
        report=payload.report,
        reward=payload.reward or 0,
        reputation=payload.reputation or 0,
    )
    return MissionCompletedResponse(ok=True)
