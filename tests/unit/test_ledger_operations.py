"""
test_ledger_operations.py - Unit tests for Ledger class operations

Tests:
- Ledger creation and configuration
- Wallet and unit registration
- Balance operations
- Time management
- Transaction execution, rejection and idempotency
- Stale state detection
- clone and clone_at
"""

import pytest
from datetime import datetime, timedelta

from principal_ledger import (
    Ledger, Move, ExecuteResult, Matured, UnitStateChange, build_transaction,
    asset, create_principal_token, YieldProtocol,
    LedgerError, WalletNotRegistered, UnitNotRegistered,
    TransactionRejected, BalanceConstraintViolation, TransferRuleViolation, StaleState,
    SYSTEM_WALLET, CUSTODY_INTERNAL,
)


class TestLedgerCreation:
    """Tests for Ledger initialization."""

    def test_create_ledger_minimal(self):
        ledger = Ledger("test")
        assert ledger.name == "test"
        assert ledger.verbose is True

    def test_create_ledger_with_options(self):
        t = datetime(2025, 1, 1, 9, 30)
        ledger = Ledger(name="test", initial_time=t, verbose=False)
        assert ledger.current_time == t
        assert ledger.verbose is False

    def test_system_wallet_registered(self, empty_ledger):
        assert SYSTEM_WALLET in empty_ledger.list_wallets()

    def test_starts_without_history(self, empty_ledger):
        assert empty_ledger.transaction_log == []
        assert empty_ledger.events == []
        assert empty_ledger.next_sequence == 0
        assert empty_ledger.last_rejection == ""


class TestRegistration:

    def test_register_wallet(self, empty_ledger):
        assert empty_ledger.register_wallet("alice") == "alice"
        assert empty_ledger.is_registered("alice")

    def test_register_duplicate_wallet(self, empty_ledger):
        empty_ledger.register_wallet("alice")
        with pytest.raises(ValueError, match="already registered"):
            empty_ledger.register_wallet("alice")

    def test_register_unit(self, empty_ledger):
        empty_ledger.register_unit(asset("DAI", "Dai"))
        assert empty_ledger.list_units() == ["DAI"]
        assert empty_ledger.get_unit("DAI").name == "Dai"

    def test_register_duplicate_unit(self, empty_ledger):
        empty_ledger.register_unit(asset("DAI", "Dai"))
        with pytest.raises(ValueError, match="already registered"):
            empty_ledger.register_unit(asset("DAI", "Dai"))

    def test_register_unit_prints_when_verbose(self, capsys):
        ledger = Ledger("test")
        ledger.register_unit(asset("DAI", "Dai"))
        assert "Registered: DAI" in capsys.readouterr().out

    def test_unknown_unit(self, empty_ledger):
        with pytest.raises(UnitNotRegistered):
            empty_ledger.get_unit("NOPE")
        with pytest.raises(UnitNotRegistered):
            empty_ledger.get_unit_state("NOPE")


class TestBalances:

    def test_get_balance_defaults_to_zero(self, basic_ledger):
        assert basic_ledger.get_balance("alice", "DAI") == 0

    def test_set_balance_requires_test_mode(self):
        ledger = Ledger("prod", verbose=False)
        ledger.register_unit(asset("DAI", "Dai"))
        ledger.register_wallet("alice")
        with pytest.raises(LedgerError, match="test_mode"):
            ledger.set_balance("alice", "DAI", 10)

    def test_set_balance_rejects_float(self, basic_ledger):
        with pytest.raises(ValueError, match="int"):
            basic_ledger.set_balance("alice", "DAI", 1.5)

    def test_set_balance_unknown_wallet(self, basic_ledger):
        with pytest.raises(WalletNotRegistered):
            basic_ledger.set_balance("nobody", "DAI", 1)

    def test_positions_and_supply(self, funded_ledger):
        funded_ledger.set_balance("bob", "DAI", 5)
        assert funded_ledger.get_positions("DAI") == {"alice": 10_000, "bob": 5}
        assert funded_ledger.total_supply("DAI") == 10_005

    def test_total_supply_excludes_system(self, funded_ledger):
        tx = build_transaction(funded_ledger, [Move(400, "DAI", "alice", SYSTEM_WALLET, "burn")])
        funded_ledger.execute(tx)
        assert funded_ledger.total_supply("DAI") == 9_600

    def test_wallet_balances(self, funded_ledger):
        assert funded_ledger.get_wallet_balances("alice") == {"DAI": 10_000}


class TestTime:

    def test_advance_time(self, basic_ledger):
        later = basic_ledger.current_time + timedelta(days=1)
        basic_ledger.advance_time(later)
        assert basic_ledger.current_time == later

    def test_cannot_go_backwards(self, basic_ledger):
        with pytest.raises(ValueError, match="backwards"):
            basic_ledger.advance_time(datetime(2000, 1, 1))


class TestExecute:

    def test_execute_transfer(self, funded_ledger):
        tx = build_transaction(funded_ledger, [Move(100, "DAI", "alice", "bob", "pay")])
        assert funded_ledger.execute(tx) == ExecuteResult.APPLIED
        assert funded_ledger.get_balance("alice", "DAI") == 9_900
        assert funded_ledger.get_balance("bob", "DAI") == 100
        assert funded_ledger.next_sequence == 1

    def test_empty_transaction_is_noop(self, funded_ledger):
        tx = build_transaction(funded_ledger, [])
        assert funded_ledger.execute(tx) == ExecuteResult.APPLIED
        assert funded_ledger.transaction_log == []

    def test_idempotent(self, funded_ledger):
        tx = build_transaction(funded_ledger, [Move(100, "DAI", "alice", "bob", "pay")])
        funded_ledger.execute(tx)
        assert funded_ledger.execute(tx) == ExecuteResult.ALREADY_APPLIED
        assert funded_ledger.get_balance("bob", "DAI") == 100

    def test_insufficient_balance_rejected(self, funded_ledger):
        tx = build_transaction(funded_ledger, [Move(10_001, "DAI", "alice", "bob", "pay")])
        assert funded_ledger.execute(tx) == ExecuteResult.REJECTED
        assert "< min" in funded_ledger.last_rejection
        assert isinstance(funded_ledger.last_rejection_error, BalanceConstraintViolation)
        assert funded_ledger.get_balance("alice", "DAI") == 10_000

    def test_unregistered_wallet_rejected(self, funded_ledger):
        tx = build_transaction(funded_ledger, [Move(1, "DAI", "alice", "ghost", "pay")])
        assert funded_ledger.execute(tx) == ExecuteResult.REJECTED
        assert "not registered" in funded_ledger.last_rejection
        assert type(funded_ledger.last_rejection_error) is TransactionRejected

    def test_system_wallet_can_issue(self, basic_ledger):
        tx = build_transaction(basic_ledger, [Move(50, "DAI", SYSTEM_WALLET, "alice", "mint")])
        assert basic_ledger.execute(tx) == ExecuteResult.APPLIED
        assert basic_ledger.get_balance(SYSTEM_WALLET, "DAI") == -50

    def test_last_rejection_cleared_on_success(self, funded_ledger):
        funded_ledger.execute(build_transaction(funded_ledger, [Move(10**9, "DAI", "alice", "bob", "x")]))
        funded_ledger.execute(build_transaction(funded_ledger, [Move(1, "DAI", "alice", "bob", "y")]))
        assert funded_ledger.last_rejection == ""
        assert funded_ledger.last_rejection_error is None

    def test_future_timestamp_rejected(self, funded_ledger):
        tx = build_transaction(funded_ledger, [Move(1, "DAI", "alice", "bob", "pay")])
        other = Ledger("other", datetime(2024, 1, 1), verbose=False, test_mode=True)
        other.register_unit(asset("DAI", "Dai"))
        other.register_wallet("alice")
        other.register_wallet("bob")
        other.set_balance("alice", "DAI", 10)
        assert other.execute(tx) == ExecuteResult.REJECTED
        assert other.last_rejection == "future timestamp"

    def test_transfer_rule_rejects(self, empty_ledger):
        empty_ledger.register_unit(create_principal_token(
            "PT", "PT", "DAI", datetime(2025, 6, 1), CUSTODY_INTERNAL, reserve_wallet="reserve",
        ))
        empty_ledger.register_wallet("alice")
        empty_ledger.register_wallet("reserve")
        empty_ledger.set_balance("alice", "PT", 10)
        tx = build_transaction(empty_ledger, [Move(1, "PT", "alice", "reserve", "t")])
        assert empty_ledger.execute(tx) == ExecuteResult.REJECTED
        assert "reserve" in empty_ledger.last_rejection
        assert isinstance(empty_ledger.last_rejection_error, TransferRuleViolation)


class TestStateChanges:

    def _ledger(self):
        ledger = Ledger("test", datetime(2025, 6, 1), verbose=False, test_mode=True)
        ledger.register_unit(create_principal_token(
            "PT", "PT", "DAI", datetime(2025, 6, 1), "AUTHORIZED_EXTERNAL",
            YieldProtocol.COMPOUND, "cDAI",
        ))
        return ledger

    def _lock(self, ledger, old, rate):
        new = {**old, "maturity_rate": rate}
        return build_transaction(
            ledger, [], [UnitStateChange("PT", old, new)],
            events=[Matured("PT", ledger.current_time, rate)],
        )

    def test_state_change_applied_with_event(self):
        ledger = self._ledger()
        old = ledger.get_unit_state("PT")
        assert ledger.execute(self._lock(ledger, old, 5)) == ExecuteResult.APPLIED
        assert ledger.get_unit_state("PT")["maturity_rate"] == 5
        assert ledger.events == [Matured("PT", datetime(2025, 6, 1), 5)]

    def test_stale_old_state_rejected(self):
        ledger = self._ledger()
        old = ledger.get_unit_state("PT")
        first = self._lock(ledger, old, 5)
        second = self._lock(ledger, old, 7)
        assert ledger.execute(first) == ExecuteResult.APPLIED
        assert ledger.execute(second) == ExecuteResult.REJECTED
        assert "stale state for PT.maturity_rate" in ledger.last_rejection
        assert isinstance(ledger.last_rejection_error, StaleState)
        assert isinstance(ledger.last_rejection_error, TransactionRejected)
        assert ledger.get_unit_state("PT")["maturity_rate"] == 5
        assert len(ledger.events) == 1

    def test_rejected_transaction_publishes_no_event(self):
        ledger = self._ledger()
        stale = {**ledger.get_unit_state("PT"), "maturity_rate": 1}
        assert ledger.execute(self._lock(ledger, stale, 9)) == ExecuteResult.REJECTED
        assert ledger.events == []

    def test_verbose_reports_maturity(self, capsys):
        ledger = self._ledger()
        ledger.verbose = True
        ledger.execute(self._lock(ledger, ledger.get_unit_state("PT"), 5))
        assert "MATURED: PT locked rate 5" in capsys.readouterr().out


class TestCloning:

    def test_clone_is_independent(self, funded_ledger):
        clone = funded_ledger.clone()
        clone.execute(build_transaction(clone, [Move(1, "DAI", "alice", "bob", "pay")]))
        assert funded_ledger.get_balance("bob", "DAI") == 0
        assert clone.get_balance("bob", "DAI") == 1
        assert clone.lock is not funded_ledger.lock

    def test_clone_at_unwinds_moves(self, funded_ledger):
        t0 = funded_ledger.current_time
        funded_ledger.advance_time(t0 + timedelta(days=1))
        funded_ledger.execute(build_transaction(funded_ledger, [Move(100, "DAI", "alice", "bob", "pay")]))
        past = funded_ledger.clone_at(t0)
        assert past.get_balance("alice", "DAI") == 10_000
        assert past.get_balance("bob", "DAI") == 0
        assert past.transaction_log == []

    def test_clone_at_future_raises(self, funded_ledger):
        with pytest.raises(ValueError, match="future"):
            funded_ledger.clone_at(datetime(2100, 1, 1))
