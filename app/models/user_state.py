from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class UserState(Base):
    """Model for user_state table, running credits / reputation per address.
    Only ever changed through additive updates (see app.services.ledger.apply_delta).
    Example:
    {
        "addr": "FoNe1q9x...walletaddress",
        "credits": "120.5",
        "reputation": 14,
        "updated_at": "2024-01-01T12:00:00"
    }
    """

    __tablename__ = "user_state"

    addr = Column(
        Text, ForeignKey("wallets.addr", ondelete="CASCADE"), primary_key=True
    )
    credits = Column(Numeric, nullable=False, default=0, server_default="0")
    reputation = Column(Integer, nullable=False, default=0, server_default="0")
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    wallet = relationship("Wallet", back_populates="state")
