import threading
from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest
from sqlalchemy import delete, inspect, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.errors import StoreFailed
from app.db.session import build_engine
from app.models.mission_completion import MissionCompletion
from app.models.user_state import UserState
from app.models.wallet import Wallet
from app.services.ledger import (
    LedgerState,
    apply_delta,
    ensure_wallet,
    get_state,
    init_schema,
    list_mission_completions,
    record_mission_completion,
)

ADDR = "FoNe1q9xledgertest"


class TestEnsureWallet:
    """Test cases for wallet registration"""

    def test_unknown_address_has_zero_state(self, db_session):
        """Test that reading an unseen address returns zeros and writes nothing"""
        state = get_state(db_session, "FoNe1neverseen")

        assert state == LedgerState()
        assert state.credits == 0
        assert state.reputation == 0
        assert db_session.query(Wallet).count() == 0

    def test_ensure_wallet_is_idempotent(self, db_session):
        ensure_wallet(db_session, ADDR)
        ensure_wallet(db_session, ADDR)

        assert db_session.query(Wallet).filter(Wallet.addr == ADDR).count() == 1
        assert db_session.query(UserState).filter(UserState.addr == ADDR).count() == 1
        assert get_state(db_session, ADDR) == LedgerState(credits=Decimal(0), reputation=0)

    def test_ensure_wallet_unsupported_dialect(self):
        """Test that dialects without an insert-or-ignore form are refused"""
        db = Mock(spec=Session)
        db.get_bind.return_value.dialect.name = "mysql"

        with pytest.raises(StoreFailed):
            ensure_wallet(db, ADDR)

        db.execute.assert_not_called()
        db.commit.assert_not_called()

    def test_ensure_wallet_concurrent_calls(self, tmp_path):
        """Test that parallel registrations of one address create exactly one row each"""
        file_engine = build_engine(
            f"sqlite:///{tmp_path / 'ledger.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        init_schema(file_engine)
        SessionFactory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)

        workers = 8
        barrier = threading.Barrier(workers)
        errors = []

        def register():
            db = SessionFactory()
            try:
                barrier.wait()
                ensure_wallet(db, ADDR)
            except Exception as e:
                errors.append(e)
            finally:
                db.close()

        threads = [threading.Thread(target=register) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        db = SessionFactory()
        try:
            assert errors == []
            assert db.query(Wallet).count() == 1
            assert db.query(UserState).count() == 1
        finally:
            db.close()
            file_engine.dispose()


class TestApplyDelta:
    """Test cases for additive balance updates"""

    def test_apply_delta_registers_wallet(self, db_session):
        apply_delta(db_session, ADDR, 5, 1)

        assert db_session.get(Wallet, ADDR) is not None
        assert get_state(db_session, ADDR) == LedgerState(credits=Decimal(5), reputation=1)

    def test_final_state_is_sum_of_deltas(self, db_session):
        """Test that the result does not depend on the order of the deltas"""
        deltas = [(10, 2), (-3, -5), (Decimal("0.25"), 0), (0, 0), ("1.5", 7)]

        for credits, reputation in deltas:
            apply_delta(db_session, "FoNe1forward", credits, reputation)
        for credits, reputation in reversed(deltas):
            apply_delta(db_session, "FoNe1backward", credits, reputation)

        forward = get_state(db_session, "FoNe1forward")
        backward = get_state(db_session, "FoNe1backward")
        assert forward.credits == Decimal("8.75")
        assert forward.reputation == 4
        assert forward == backward

    def test_apply_delta_refreshes_updated_at(self, db_session):
        apply_delta(db_session, ADDR, 1, 1)
        db_session.execute(
            update(UserState)
            .where(UserState.addr == ADDR)
            .values(updated_at=datetime(2000, 1, 1))
        )
        db_session.commit()

        apply_delta(db_session, ADDR, 0, 0)

        updated_at = db_session.execute(
            select(UserState.updated_at).where(UserState.addr == ADDR)
        ).scalar_one()
        assert updated_at.replace(tzinfo=None) > datetime(2000, 1, 1)

    def test_negative_balance_allowed(self, db_session):
        apply_delta(db_session, ADDR, -2, -9)

        state = get_state(db_session, ADDR)
        assert state.credits == Decimal(-2)
        assert state.reputation == -9


class TestRecordMissionCompletion:
    """Test cases for the mission history and its balance update"""

    def test_record_mission_completion(self, db_session):
        completion = record_mission_completion(db_session, ADDR, "m1", "report", 10, 5)

        state = get_state(db_session, ADDR)
        assert state.credits == 10
        assert state.reputation == 5

        rows = db_session.query(MissionCompletion).all()
        assert len(rows) == 1
        assert rows[0].id == completion.id
        assert rows[0].addr == ADDR
        assert rows[0].mission_id == "m1"
        assert rows[0].report == "report"
        assert rows[0].reward == 10
        assert rows[0].reputation == 5
        assert rows[0].created_at is not None

    def test_repeated_completion_is_not_deduplicated(self, db_session):
        record_mission_completion(db_session, ADDR, "m1", "report", 10, 5)
        record_mission_completion(db_session, ADDR, "m1", "report", 10, 5)

        assert db_session.query(MissionCompletion).count() == 2
        assert get_state(db_session, ADDR) == LedgerState(credits=Decimal(20), reputation=10)

    def test_failure_rolls_back_history_row(self, db_session):
        """Test that a failed balance update leaves no history row behind"""
        with patch("app.services.ledger._add_delta", side_effect=SQLAlchemyError("boom")):
            with pytest.raises(StoreFailed):
                record_mission_completion(db_session, ADDR, "m1", None, 10, 5)

        assert db_session.query(MissionCompletion).count() == 0
        assert db_session.query(Wallet).count() == 0
        assert get_state(db_session, ADDR) == LedgerState()

    def test_store_failed_hides_detail(self):
        db = Mock(spec=Session)
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("password=hunter2"))

        with pytest.raises(StoreFailed) as exc_info:
            get_state(db, ADDR)

        assert exc_info.value.public_message == "DB error"
        assert "hunter2" not in str(exc_info.value)


class TestHistoryAndSchema:
    """Test cases for history listing, cascades and schema creation"""

    def test_list_newest_first_with_pagination(self, db_session):
        for mission in ("m1", "m2", "m3"):
            record_mission_completion(db_session, ADDR, mission, None, 1, 1)
        record_mission_completion(db_session, "FoNe1other", "m9", None, 1, 1)

        items, total = list_mission_completions(db_session, ADDR, limit=2, offset=0)
        assert total == 3
        assert [item.mission_id for item in items] == ["m3", "m2"]

        items, total = list_mission_completions(db_session, ADDR, limit=2, offset=2)
        assert total == 3
        assert [item.mission_id for item in items] == ["m1"]

    def test_deleting_wallet_cascades(self, db_session):
        record_mission_completion(db_session, ADDR, "m1", "report", 10, 5)
        record_mission_completion(db_session, ADDR, "m2", None, 1, 1)
        record_mission_completion(db_session, "FoNe1kept", "m1", None, 1, 1)

        db_session.execute(delete(Wallet).where(Wallet.addr == ADDR))
        db_session.commit()

        assert db_session.query(UserState).filter(UserState.addr == ADDR).count() == 0
        assert db_session.query(MissionCompletion).filter(MissionCompletion.addr == ADDR).count() == 0
        assert db_session.query(MissionCompletion).count() == 1
        assert get_state(db_session, "FoNe1kept") == LedgerState(credits=Decimal(1), reputation=1)

    def test_init_schema_is_idempotent(self, engine):
        init_schema(engine)
        init_schema(engine)

        tables = set(inspect(engine).get_table_names())
        assert {"wallets", "user_state", "mission_completions"} <= tables
