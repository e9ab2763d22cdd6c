from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class MissionCompletion(Base):
    """Model for mission_completions table, append-only audit trail
    mission_id is not unique: the same mission may be completed many times.
    Example:
    {
        "id": 1,
        "addr": "FoNe1q9x...walletaddress",
        "mission_id": "plant-a-tree",
        "report": "planted 3 trees at the park",
        "reward": "10",
        "reputation": 5,
        "created_at": "2024-01-01T12:00:00"
    }
    """

    __tablename__ = "mission_completions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    addr = Column(
        Text,
        ForeignKey("wallets.addr", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mission_id = Column(Text, nullable=False)
    report = Column(Text, nullable=True)
    reward = Column(Numeric, nullable=False, default=0, server_default="0")
    reputation = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    wallet = relationship("Wallet", back_populates="missions")
