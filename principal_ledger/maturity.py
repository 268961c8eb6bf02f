"""
maturity.py - Maturity gate and one-time rate lock

The gate decides, for every redemption-family call, whether to block, to lock
the maturity rate and proceed, or to proceed with the rate already locked.

State machine per principal token:

    PRE_MATURE --(first mutating call at/after maturity)--> MATURED
                 (that call itself is the MATURING step)

The lock is expressed as a UnitStateChange whose old_state still carries an
unset maturity_rate. The ledger refuses stale old_state, so if two "first"
lockers race only one of them can commit; everyone after reads the stored rate.

Parity tokens (internal custody) never lock: their rate pair is fixed at 1:1.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .core import (
    LedgerView, UnitState, UnitStateChange, Matured,
    MaturityNotReached, RateUnavailable, RATE_UNSET, CUSTODY_INTERNAL,
)
from .rate_source import ExchangeRateSource, YieldProtocol


class GateStatus(Enum):
    """Position of a principal token in its maturity state machine."""
    PRE_MATURE = "pre_mature"
    MATURING = "maturing"
    MATURED = "matured"


# Rate pair used by tokens whose underlying accrues no yield.
PARITY_RATE = 1


@dataclass(frozen=True, slots=True)
class LockDecision:
    """
    Outcome of evaluating the maturity gate.

    Attributes:
        status: PRE_MATURE (quotes answer zero), MATURING (this call locks the
                rate) or MATURED (rate already locked, or parity)
        rate: Numerator rate for conversions
        maturity_rate: Denominator rate for conversions
        state_change: The lock write, present only for a mutating MATURING call
        event: Matured notification, present only alongside state_change
    """
    status: GateStatus
    rate: int = 0
    maturity_rate: int = 0
    state_change: Optional[UnitStateChange] = None
    event: Optional[Matured] = None

    @property
    def is_open(self) -> bool:
        return self.status is not GateStatus.PRE_MATURE


def _live_rate(symbol: str, state: UnitState, rate_source: Optional[ExchangeRateSource],
               now: datetime) -> int:
    if rate_source is None:
        raise RateUnavailable(f"{symbol} needs a rate source")
    return rate_source.exchange_rate(YieldProtocol(state['protocol']), state['yield_token'], now)


def evaluate_gate(
    view: LedgerView,
    symbol: str,
    now: datetime,
    rate_source: Optional[ExchangeRateSource],
    *,
    quote: bool,
    locks_rate: bool = True,
    state: Optional[UnitState] = None,
) -> LockDecision:
    """
    Evaluate the maturity gate for one call.

    Args:
        view: Read-only ledger access
        symbol: Principal token symbol
        now: Time of the call
        rate_source: Live exchange rate source (unused for parity tokens)
        quote: True for views and previews, which never fail and never lock
        locks_rate: False for parity tokens
        state: Token state already read by the caller, if any

    Returns:
        LockDecision describing how the call proceeds.

    Raises:
        MaturityNotReached: If a mutating call arrives before maturity
        RateUnavailable: If the rate source cannot answer when it must
    """
    if state is None:
        state = view.get_unit_state(symbol)
    maturity: datetime = state['maturity']

    if now < maturity:
        if quote:
            return LockDecision(GateStatus.PRE_MATURE)
        raise MaturityNotReached(maturity)

    if not locks_rate:
        return LockDecision(GateStatus.MATURED, PARITY_RATE, PARITY_RATE)

    locked = state.get('maturity_rate', RATE_UNSET)
    if locked != RATE_UNSET:
        rate = _live_rate(symbol, state, rate_source, now) if state.get('accrue_after_maturity') else locked
        return LockDecision(GateStatus.MATURED, rate, locked)

    live = _live_rate(symbol, state, rate_source, now)
    if quote:
        return LockDecision(GateStatus.MATURING, live, live)

    new_state = {**state, 'maturity_rate': live}
    return LockDecision(
        status=GateStatus.MATURING,
        rate=live,
        maturity_rate=live,
        state_change=UnitStateChange(unit=symbol, old_state=state, new_state=new_state),
        event=Matured(symbol=symbol, timestamp=now, rate=live),
    )


def maturity_status(view: LedgerView, symbol: str, now: Optional[datetime] = None) -> GateStatus:
    """
    Report where a token sits in its state machine without consulting any rate.

    A token past maturity whose rate has not been locked yet reports MATURING:
    the next mutating call will perform the lock.
    """
    state = view.get_unit_state(symbol)
    now = now or view.current_time
    if now < state['maturity']:
        return GateStatus.PRE_MATURE
    if state.get('custody') == CUSTODY_INTERNAL or state.get('maturity_rate', RATE_UNSET) != RATE_UNSET:
        return GateStatus.MATURED
    return GateStatus.MATURING
