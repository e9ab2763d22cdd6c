from sqlalchemy import Column, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class Wallet(Base):
    """Model for wallets table, one row per address known locally.
    Rows are insert-only; user_state and mission_completions cascade on delete.
    Example:
    {
        "addr": "FoNe1q9x...walletaddress",
        "created_at": "2024-01-01T12:00:00"
    }
    """

    __tablename__ = "wallets"

    addr = Column(Text, primary_key=True)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    state = relationship(
        "UserState",
        back_populates="wallet",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    missions = relationship(
        "MissionCompletion",
        back_populates="wallet",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
