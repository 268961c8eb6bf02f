"""
token.py - Stateful principal token facade

PrincipalToken binds a registered principal token unit to its ledger, its
settlement executor and its exchange rate source, and exposes the entry
points a holder or delegate calls. Every mutation is built and executed while
holding the ledger lock, so the read-modify-write of the maturity rate and
allowances is serialized and each call commits completely or not at all.

Example:
    ledger = Ledger("main", datetime(2025, 1, 1), verbose=False)
    ledger.register_unit(asset("DAI", "Dai Stablecoin"))
    ledger.register_unit(create_principal_token(
        "PT_DAI", "DAI principal 2025-06", "DAI", datetime(2025, 6, 1),
        CUSTODY_AUTHORIZED_EXTERNAL, YieldProtocol.COMPOUND, "cDAI", admin="lender",
    ))
    token = PrincipalToken(ledger, "PT_DAI",
                           AuthorizedExternalCustody(LedgerCustodian("redeemer")),
                           rate_source)
    token.mint("lender", "alice", 100)
    ...
    ledger.advance_time(datetime(2025, 6, 1))
    paid = token.redeem("alice", 100, receiver="alice", holder="alice")
"""

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .core import (
    ExecuteResult, PendingTransaction, Matured, UnitNotRegistered,
    LedgerError, TransactionRejected, UNIT_TYPE_PRINCIPAL_TOKEN,
)
from .ledger import Ledger
from .authorization import allowance as read_allowance
from .maturity import GateStatus, maturity_status
from .rate_source import ExchangeRateSource
from .settlement import SettlementExecutor
from .units import principal_token as pt


class PrincipalToken:
    """
    Entry points of one principal token.

    Views never raise on the maturity condition and return 0 before it.
    Mutations raise MaturityNotReached, InsufficientAllowance, Unauthorized,
    InsufficientFunds, ConversionOverflow, RateUnavailable or
    TransactionRejected, leaving the ledger untouched.
    """

    def __init__(
        self,
        ledger: Ledger,
        symbol: str,
        executor: SettlementExecutor,
        rate_source: Optional[ExchangeRateSource] = None,
    ):
        unit = ledger.get_unit(symbol)
        if unit.unit_type != UNIT_TYPE_PRINCIPAL_TOKEN:
            raise UnitNotRegistered(f"{symbol} is not a principal token")
        custody = unit.state['custody']
        if custody != executor.kind:
            raise ValueError(f"{symbol} uses {custody} custody, got a {executor.kind} executor")
        if executor.locks_rate and rate_source is None:
            raise ValueError(f"{symbol} locks a maturity rate and needs a rate source")
        self.ledger = ledger
        self.symbol = symbol
        self.executor = executor
        self.rate_source = rate_source

    # ------------------------------------------------------------------
    # Immutable terms and state
    # ------------------------------------------------------------------

    @property
    def maturity(self) -> datetime:
        return self.ledger.get_unit_state(self.symbol)['maturity']

    @property
    def underlying(self) -> str:
        return self.ledger.get_unit_state(self.symbol)['underlying']

    @property
    def maturity_rate(self) -> int:
        """Locked rate, or 0 while unset."""
        return self.ledger.get_unit_state(self.symbol)['maturity_rate']

    @property
    def status(self) -> GateStatus:
        return maturity_status(self.ledger, self.symbol)

    @property
    def matured_events(self) -> List[Matured]:
        return [e for e in self.ledger.events if e.symbol == self.symbol]

    def balance_of(self, holder: str) -> int:
        return self.ledger.get_balance(holder, self.symbol)

    def allowance(self, holder: str, spender: str) -> int:
        return read_allowance(self.ledger.get_unit_state(self.symbol), holder, spender)

    def total_supply(self) -> int:
        return self.ledger.total_supply(self.symbol)

    def status_report(self) -> Dict[str, Any]:
        return pt.get_token_status(self.ledger, self.symbol)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def convert_to_underlying(self, principal_amount: int) -> int:
        return pt.convert_to_underlying(self.ledger, self.symbol, principal_amount, self.rate_source)

    def convert_to_principal(self, underlying_amount: int) -> int:
        return pt.convert_to_principal(self.ledger, self.symbol, underlying_amount, self.rate_source)

    def max_redeem(self, holder: str) -> int:
        return pt.max_redeem(self.ledger, self.symbol, holder)

    def max_withdraw(self, holder: str) -> int:
        return pt.max_withdraw(self.ledger, self.symbol, holder, self.rate_source)

    def preview_redeem(self, principal_amount: int) -> int:
        return pt.preview_redeem(self.ledger, self.symbol, principal_amount, self.rate_source)

    def preview_withdraw(self, underlying_amount: int) -> int:
        return pt.preview_withdraw(self.ledger, self.symbol, underlying_amount, self.rate_source)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _request_id(self) -> str:
        return f"{self.symbol}:{self.ledger.next_sequence}"

    def _commit(self, pending: PendingTransaction) -> None:
        result = self.ledger.execute(pending)
        if result == ExecuteResult.REJECTED:
            error_cls = type(self.ledger.last_rejection_error or TransactionRejected(""))
            raise error_cls(f"{self.symbol} transaction rejected: {self.ledger.last_rejection}")
        if result == ExecuteResult.ALREADY_APPLIED:
            raise LedgerError(f"{self.symbol} transaction {pending.intent_id} was already applied")

    def _settle(self, compute, caller: str, amount: int, receiver: str, holder: str) -> int:
        with self.ledger.lock:
            pending, counterpart = compute(
                self.ledger, self.symbol, self.executor, self.rate_source,
                caller, amount, receiver, holder, request_id=self._request_id(),
            )
            self._commit(pending)
        if self.ledger.verbose:
            print(f"💸 {pending.origin.event_type} {self.symbol}: {caller} for {holder} "
                  f"amount={amount} -> {counterpart} (receiver={receiver})")
        return counterpart

    def redeem(self, caller: str, principal_amount: int, receiver: str, holder: str) -> int:
        """Burn `principal_amount` of `holder`'s tokens; return the underlying paid to `receiver`."""
        return self._settle(pt.compute_redeem, caller, principal_amount, receiver, holder)

    def withdraw(self, caller: str, underlying_amount: int, receiver: str, holder: str) -> int:
        """Pay `underlying_amount` to `receiver`; return the principal burned from `holder`."""
        return self._settle(pt.compute_withdraw, caller, underlying_amount, receiver, holder)

    def auth_redeem(self, caller: str, principal_amount: int, receiver: str, holder: str) -> int:
        """Admin path: redeem for any holder without a delegation check."""
        if self.executor.requires_authorization:
            raise LedgerError(f"{self.symbol} has no admin settlement path")
        return self.redeem(caller, principal_amount, receiver, holder)

    def auth_withdraw(self, caller: str, underlying_amount: int, receiver: str, holder: str) -> int:
        """Admin path: withdraw for any holder without a delegation check."""
        if self.executor.requires_authorization:
            raise LedgerError(f"{self.symbol} has no admin settlement path")
        return self.withdraw(caller, underlying_amount, receiver, holder)

    def approve(self, holder: str, spender: str, amount: int) -> None:
        with self.ledger.lock:
            self._commit(pt.compute_approve(
                self.ledger, self.symbol, holder, spender, amount, request_id=self._request_id()
            ))

    def transfer(self, sender: str, receiver: str, amount: int) -> None:
        with self.ledger.lock:
            self._commit(pt.compute_transfer(
                self.ledger, self.symbol, sender, receiver, amount, request_id=self._request_id()
            ))

    def transfer_from(self, caller: str, holder: str, receiver: str, amount: int) -> None:
        with self.ledger.lock:
            self._commit(pt.compute_transfer_from(
                self.ledger, self.symbol, caller, holder, receiver, amount,
                request_id=self._request_id(),
            ))

    def mint(self, caller: str, to: str, amount: int) -> None:
        with self.ledger.lock:
            self._commit(pt.compute_mint(
                self.ledger, self.symbol, caller, to, amount, request_id=self._request_id()
            ))

    def __repr__(self):
        return f"PrincipalToken({self.symbol}, {self.executor!r})"
