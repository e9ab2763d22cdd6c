from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field, PlainSerializer

from app.schemas.my_base_model import CustomBaseModel


def _decimal_text(value: Decimal) -> str:
    return format(value.normalize(), "f")


# NUMERIC values leave the API as exact decimal strings, never as floats
Amount = Annotated[Decimal, PlainSerializer(_decimal_text, return_type=str, when_used="json")]


class UserStateResponse(CustomBaseModel):
    """Response model for the local credits / reputation of an address"""

    addr: str = ""
    credits: Amount = Decimal(0)
    reputation: int = 0


class MissionCompletedRequest(CustomBaseModel):
    """Request body reporting a completed mission"""

    addr: Optional[str] = Field(None, description="Wallet address credited for the mission")
    missionId: Optional[str | int] = Field(None, description="Mission identifier, not unique")
    reward: Optional[Decimal] = Field(None, description="Credits to add, default 0")
    reputation: Optional[int] = Field(None, description="Reputation to add, default 0")
    report: Optional[str] = Field(None, description="Optional free-text report")


class MissionCompletedResponse(CustomBaseModel):
    ok: bool = True


class MissionCompletionItem(CustomBaseModel):
    """One row of the mission history"""

    id: int = 0
    missionId: str = ""
    report: Optional[str] = None
    reward: Amount = Decimal(0)
    reputation: int = 0
    createdAt: Optional[datetime] = None


class MissionHistoryResponse(CustomBaseModel):
    """Response model for the mission history of an address with pagination"""

    addr: str = ""
    missions: List[MissionCompletionItem] = []
    total: int = 0
    limit: int = 20
    offset: int = 0
