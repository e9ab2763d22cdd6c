"""
Local ledger of credits and reputation earned through missions.

tables:
    wallets: addr (pk), created_at
    user_state: addr (pk, fk wallets), credits, reputation, updated_at
    mission_completions: id, addr (fk wallets), mission_id, report, reward,
        reputation, created_at

Balances in user_state are the running sum of mission_completions. The two are
stored separately, so every write that touches both goes through one
transaction (see record_mission_completion).

Writes never read first: wallet registration is an insert-or-ignore and balance
changes are a single ``SET x = x + delta`` statement, so concurrent requests for
the same address cannot lose updates or trip the primary keys.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Tuple, Union

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import StoreFailed
from app.db.base import Base
from app.models.mission_completion import MissionCompletion
from app.models.user_state import UserState
from app.models.wallet import Wallet

logger = logging.getLogger(__name__)

Amount = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class LedgerState:
    credits: Decimal = Decimal(0)
    reputation: int = 0


def _to_decimal(value: Amount | None) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@contextmanager
def _transaction(db: Session, action: str) -> Iterator[None]:
    """Commit on success; on a database error roll back and raise StoreFailed."""
    try:
        yield
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("%s failed: %s", action, e)
        raise StoreFailed(f"{action} failed") from e


def _insert_ignore(db: Session, model: Any, values: Dict[str, Any]) -> None:
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(model).values(**values).on_conflict_do_nothing(
            index_elements=["addr"]
        )
    elif dialect == "sqlite":
        stmt = sqlite_insert(model).values(**values).on_conflict_do_nothing(
            index_elements=["addr"]
        )
    else:
        raise StoreFailed(f"insert-or-ignore is not supported on {dialect}")
    db.execute(stmt)


def _ensure_rows(db: Session, addr: str) -> None:
    _insert_ignore(db, Wallet, {"addr": addr})
    _insert_ignore(db, UserState, {"addr": addr, "credits": 0, "reputation": 0})


def _add_delta(db: Session, addr: str, credits_delta: Decimal, reputation_delta: int) -> None:
    db.execute(
        update(UserState)
        .where(UserState.addr == addr)
        .values(
            credits=UserState.credits + credits_delta,
            reputation=UserState.reputation + reputation_delta,
            updated_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )


def ensure_wallet(db: Session, addr: str) -> None:
    """Register ``addr`` with a zero balance; a no-op if it is already known."""
    with _transaction(db, "ensure_wallet"):
        _ensure_rows(db, addr)


def apply_delta(
    db: Session,
    addr: str,
    credits_delta: Amount = 0,
    reputation_delta: int = 0,
) -> None:
    """
    Add the given deltas to the address balance, registering the wallet first.

    Deltas may be negative or zero.
    """
    with _transaction(db, "apply_delta"):
        _ensure_rows(db, addr)
        _add_delta(db, addr, _to_decimal(credits_delta), int(reputation_delta))


def get_state(db: Session, addr: str) -> LedgerState:
    """Current balance of ``addr``; zeros for an address never seen before."""
    try:
        row = db.execute(
            select(UserState.credits, UserState.reputation).where(UserState.addr == addr)
        ).first()
    except SQLAlchemyError as e:
        logger.error("get_state failed: %s", e)
        raise StoreFailed("get_state failed") from e

    if row is None:
        return LedgerState()
    return LedgerState(
        credits=_to_decimal(row.credits),
        reputation=int(row.reputation or 0),
    )


def record_mission_completion(
    db: Session,
    addr: str,
    mission_id: str,
    report: str | None = None,
    reward: Amount = 0,
    reputation: int = 0,
) -> MissionCompletion:
    """
    Append a mission completion and credit its reward to the address.

    The history row and the balance update are committed together; if either
    fails nothing is written. Completions are not de-duplicated: recording the
    same mission twice credits it twice.

    Args:
        db: SQLAlchemy database session
        addr: Wallet address, registered on the fly if unknown
        mission_id: Opaque mission identifier
        report: Optional free-text report from the client
        reward: Credits to add (any sign)
        reputation: Reputation to add (any sign)

    Returns:
        The stored MissionCompletion row

    Raises:
        StoreFailed: on any database error, after rolling back
    """
    reward_value = _to_decimal(reward)
    reputation_value = int(reputation or 0)

    completion = MissionCompletion(
        addr=addr,
        mission_id=mission_id,
        report=report,
        reward=reward_value,
        reputation=reputation_value,
    )
    with _transaction(db, "record_mission_completion"):
        _ensure_rows(db, addr)
        db.add(completion)
        db.flush()
        _add_delta(db, addr, reward_value, reputation_value)

    logger.info(
        "mission %s completed by %s: reward=%s reputation=%d",
        mission_id,
        addr,
        reward_value,
        reputation_value,
    )
    return completion


def list_mission_completions(
    db: Session,
    addr: str,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[MissionCompletion], int]:
    """Mission history of ``addr``, newest first, with the total row count."""
    try:
        query = db.query(MissionCompletion).filter(MissionCompletion.addr == addr)
        total = query.count()
        items = (
            query.order_by(MissionCompletion.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error("list_mission_completions failed: %s", e)
        raise StoreFailed("list_mission_completions failed") from e
    return items, total


def init_schema(db_engine: Engine) -> None:
    """Create the ledger tables if they do not exist yet."""
    try:
        Base.metadata.create_all(bind=db_engine)
    except SQLAlchemyError as e:
        logger.critical("schema initialization failed: %s", e)
        raise
