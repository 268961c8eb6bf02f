"""
principal_token.py - Principal Token Unit with Maturity-Locked Redemption

A principal token has:
    maturity, underlying, custody, protocol, yield_token,
    maturity_rate (0 until locked), allowances {holder: {spender: amount}}

Before maturity: every view answers 0, every redemption raises MaturityNotReached.
First redemption at/after maturity: locks maturity_rate from the live rate source
and emits Matured, atomically with its own settlement.
Afterwards: conversions use the locked rate; the rate source is not consulted
(unless the token opted into accrue_after_maturity).

Redemption pipeline (compute_redeem / compute_withdraw):
    maturity gate -> conversion -> authorizer -> settlement executor
and the result is one PendingTransaction holding moves, the combined state
change and the Matured event.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ..core import (
    LedgerView, Move, PendingTransaction, Unit, UnitStateChange,
    TransactionOrigin, OriginType,
    build_transaction,
    UNIT_TYPE_PRINCIPAL_TOKEN, SYSTEM_WALLET, RATE_UNSET,
    CUSTODY_KINDS, CUSTODY_INTERNAL, CUSTODY_ADMIN_EXTERNAL,
    InsufficientFunds, LedgerError, Unauthorized,
    no_self_custody_rule, _freeze_state,
)
from ..conversion import to_underlying, to_principal
from ..maturity import LockDecision, evaluate_gate, maturity_status
from ..authorization import approve as approve_allowance, authorize
from ..rate_source import ExchangeRateSource, YieldProtocol
from ..settlement import SettlementExecutor, transfer_moves


# =============================================================================
# UNIT CREATION
# =============================================================================

def create_principal_token(
    symbol: str,
    name: str,
    underlying: str,
    maturity: datetime,
    custody: str,
    protocol: YieldProtocol = YieldProtocol.NONE,
    yield_token: Optional[str] = None,
    admin: Optional[str] = None,
    reserve_wallet: Optional[str] = None,
    accrue_after_maturity: bool = False,
) -> Unit:
    """
    Create a principal token unit.

    Args:
        symbol: Token symbol (e.g., "PT_DAI_2025")
        name: Human-readable name
        underlying: Symbol of the asset the token redeems into
        maturity: Time from which redemption is possible; fixed forever
        custody: One of CUSTODY_AUTHORIZED_EXTERNAL, CUSTODY_ADMIN_EXTERNAL, CUSTODY_INTERNAL
        protocol: Rate provider for externally-custodied tokens
        yield_token: Yield-bearing token whose rate is locked at maturity
        admin: Wallet allowed to mint and to use the admin settlement path
        reserve_wallet: Wallet holding the underlying for internal custody
        accrue_after_maturity: Keep reading the live rate as conversion
            numerator after the lock (the locked rate stays the denominator)

    Returns:
        Unit with maturity_rate unset and an empty allowance map.
    """
    if not symbol or not symbol.strip():
        raise ValueError("symbol cannot be empty")
    if not underlying or not underlying.strip():
        raise ValueError("underlying cannot be empty")
    if underlying == symbol:
        raise ValueError("a principal token cannot be its own underlying")
    if not isinstance(maturity, datetime):
        raise ValueError(f"maturity must be a datetime, got {type(maturity)}")
    if custody not in CUSTODY_KINDS:
        raise ValueError(f"Unknown custody kind: {custody}")

    if custody == CUSTODY_INTERNAL:
        if not reserve_wallet or not reserve_wallet.strip():
            raise ValueError("internal custody requires a reserve_wallet")
        if accrue_after_maturity:
            raise ValueError("internal custody settles at parity and cannot accrue")
    else:
        if protocol is YieldProtocol.NONE or not yield_token:
            raise ValueError("external custody requires a protocol and yield_token")
    if custody == CUSTODY_ADMIN_EXTERNAL and not admin:
        raise ValueError("admin custody requires an admin wallet")

    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_PRINCIPAL_TOKEN,
        min_balance=0,
        transfer_rule=no_self_custody_rule if custody == CUSTODY_INTERNAL else None,
        _frozen_state=_freeze_state({
            'maturity': maturity,
            'underlying': underlying,
            'custody': custody,
            'protocol': protocol.value,
            'yield_token': yield_token,
            'admin': admin,
            'reserve_wallet': reserve_wallet,
            'accrue_after_maturity': accrue_after_maturity,
            'maturity_rate': RATE_UNSET,
            'allowances': {},
        })
    )


# =============================================================================
# HELPERS
# =============================================================================

def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"amount must be int, got {type(amount)}")
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")


def _quote(view: LedgerView, symbol: str, rate_source: Optional[ExchangeRateSource]) -> LockDecision:
    state = view.get_unit_state(symbol)
    return evaluate_gate(
        view, symbol, view.current_time, rate_source,
        quote=True, locks_rate=state['custody'] != CUSTODY_INTERNAL, state=state,
    )


def _origin(executor: SettlementExecutor, caller: str, symbol: str,
            event_type: str, request_id: Optional[str]) -> TransactionOrigin:
    origin_type = OriginType.USER_ACTION if executor.requires_authorization else OriginType.ADMIN
    return TransactionOrigin(origin_type, caller, symbol, event_type, request_id)


def _require_balance(view: LedgerView, symbol: str, holder: str, amount: int) -> None:
    balance = view.get_balance(holder, symbol)
    if balance < amount:
        raise InsufficientFunds(f"{holder} holds {balance} {symbol}, needs {amount}")


# =============================================================================
# VIEWS (never fail on maturity; zero before it)
# =============================================================================

def convert_to_underlying(view: LedgerView, symbol: str, principal_amount: int,
                          rate_source: Optional[ExchangeRateSource] = None) -> int:
    """Underlying a principal amount is worth now; 0 before maturity."""
    _check_amount(principal_amount)
    decision = _quote(view, symbol, rate_source)
    if not decision.is_open:
        return 0
    return to_underlying(principal_amount, decision.rate, decision.maturity_rate)


def convert_to_principal(view: LedgerView, symbol: str, underlying_amount: int,
                         rate_source: Optional[ExchangeRateSource] = None) -> int:
    """Principal needed for an underlying amount now; 0 before maturity."""
    _check_amount(underlying_amount)
    decision = _quote(view, symbol, rate_source)
    if not decision.is_open:
        return 0
    return to_principal(underlying_amount, decision.rate, decision.maturity_rate)


def preview_redeem(view: LedgerView, symbol: str, principal_amount: int,
                   rate_source: Optional[ExchangeRateSource] = None) -> int:
    """
    Simulate redeem(): the underlying a redemption would pay out now.

    Uses the same rates as redeem() but never locks. Before maturity it
    answers 0 instead of raising.
    """
    _check_amount(principal_amount)
    decision = _quote(view, symbol, rate_source)
    if not decision.is_open:
        return 0
    return to_underlying(principal_amount, decision.rate, decision.maturity_rate)


def preview_withdraw(view: LedgerView, symbol: str, underlying_amount: int,
                     rate_source: Optional[ExchangeRateSource] = None) -> int:
    """Simulate withdraw(): the principal a withdrawal would burn now."""
    _check_amount(underlying_amount)
    decision = _quote(view, symbol, rate_source)
    if not decision.is_open:
        return 0
    return to_principal(underlying_amount, decision.rate, decision.maturity_rate)


def max_redeem(view: LedgerView, symbol: str, holder: str) -> int:
    """Holder's full principal balance once matured; 0 before maturity."""
    state = view.get_unit_state(symbol)
    if view.current_time < state['maturity']:
        return 0
    return view.get_balance(holder, symbol)


def max_withdraw(view: LedgerView, symbol: str, holder: str,
                 rate_source: Optional[ExchangeRateSource] = None) -> int:
    """Underlying equivalent of the holder's full balance; 0 before maturity."""
    return convert_to_underlying(view, symbol, max_redeem(view, symbol, holder), rate_source)


def get_token_status(view: LedgerView, symbol: str) -> Dict[str, Any]:
    """Summary of a principal token's maturity state and outstanding supply."""
    state = view.get_unit_state(symbol)
    positions = view.get_positions(symbol)
    return {
        'symbol': symbol,
        'underlying': state['underlying'],
        'maturity': state['maturity'],
        'custody': state['custody'],
        'maturity_rate': state['maturity_rate'],
        'status': maturity_status(view, symbol).value,
        'total_supply': sum(q for w, q in positions.items() if w != SYSTEM_WALLET),
        'holders': sum(1 for w, q in positions.items() if w != SYSTEM_WALLET and q > 0),
    }


# =============================================================================
# REDEMPTION
# =============================================================================

def _compute_settlement(
    view: LedgerView,
    symbol: str,
    executor: SettlementExecutor,
    rate_source: Optional[ExchangeRateSource],
    caller: str,
    amount: int,
    receiver: str,
    holder: str,
    principal_denominated: bool,
    request_id: Optional[str],
) -> Tuple[PendingTransaction, int]:
    _check_amount(amount)
    state = view.get_unit_state(symbol)
    if state['custody'] != executor.kind:
        raise LedgerError(f"{symbol} is {state['custody']} custody, executor is {executor.kind}")
    executor.check_caller(state, caller)

    decision = evaluate_gate(
        view, symbol, view.current_time, rate_source,
        quote=False, locks_rate=executor.locks_rate, state=state,
    )
    if principal_denominated:
        principal_amount = amount
        underlying_amount = to_underlying(amount, decision.rate, decision.maturity_rate)
    else:
        underlying_amount = amount
        principal_amount = to_principal(amount, decision.rate, decision.maturity_rate)

    new_state = decision.state_change.new_state if decision.state_change else state
    if executor.requires_authorization:
        authorized_state = authorize(new_state, caller, holder, principal_amount)
        if authorized_state is not None:
            new_state = authorized_state

    _require_balance(view, symbol, holder, principal_amount)
    moves = executor.settle(view, symbol, new_state, holder, receiver, principal_amount, underlying_amount)

    state_changes = []
    if new_state != state:
        state_changes.append(UnitStateChange(unit=symbol, old_state=state, new_state=new_state))
    events = [decision.event] if decision.event else []
    event_type = "REDEEM" if principal_denominated else "WITHDRAW"

    pending = build_transaction(
        view, moves, state_changes,
        origin=_origin(executor, caller, symbol, event_type, request_id),
        events=events,
    )
    return pending, underlying_amount if principal_denominated else principal_amount


def compute_redeem(
    view: LedgerView,
    symbol: str,
    executor: SettlementExecutor,
    rate_source: Optional[ExchangeRateSource],
    caller: str,
    principal_amount: int,
    receiver: str,
    holder: str,
    request_id: Optional[str] = None,
) -> Tuple[PendingTransaction, int]:
    """
    Redeem `principal_amount` of `holder`'s tokens, paying underlying to `receiver`.

    Returns:
        (pending transaction, underlying amount paid out)

    Raises:
        MaturityNotReached: Before maturity
        InsufficientAllowance: Delegated caller without enough allowance
        Unauthorized: Non-admin caller on the admin path
        InsufficientFunds: Holder balance below principal_amount
        ConversionOverflow / RateUnavailable: Arithmetic or rate failure
    """
    return _compute_settlement(
        view, symbol, executor, rate_source, caller, principal_amount,
        receiver, holder, principal_denominated=True, request_id=request_id,
    )


def compute_withdraw(
    view: LedgerView,
    symbol: str,
    executor: SettlementExecutor,
    rate_source: Optional[ExchangeRateSource],
    caller: str,
    underlying_amount: int,
    receiver: str,
    holder: str,
    request_id: Optional[str] = None,
) -> Tuple[PendingTransaction, int]:
    """
    Withdraw `underlying_amount` for `receiver`, burning the principal it costs `holder`.

    Returns:
        (pending transaction, principal amount burned)
    """
    return _compute_settlement(
        view, symbol, executor, rate_source, caller, underlying_amount,
        receiver, holder, principal_denominated=False, request_id=request_id,
    )


# =============================================================================
# FUNGIBLE BOOKKEEPING
# =============================================================================

def compute_approve(view: LedgerView, symbol: str, holder: str, spender: str, amount: int,
                    request_id: Optional[str] = None) -> PendingTransaction:
    """Set the allowance `holder` grants `spender` for delegated redemption and transfer."""
    _check_amount(amount)
    state = view.get_unit_state(symbol)
    new_state = approve_allowance(state, holder, spender, amount)
    return build_transaction(
        view, [], [UnitStateChange(unit=symbol, old_state=state, new_state=new_state)],
        origin=TransactionOrigin(OriginType.USER_ACTION, holder, symbol, "APPROVE", request_id),
    )


def compute_transfer(view: LedgerView, symbol: str, sender: str, receiver: str, amount: int,
                     request_id: Optional[str] = None) -> PendingTransaction:
    """Move principal tokens between holders. Allowed before and after maturity."""
    _check_amount(amount)
    _require_balance(view, symbol, sender, amount)
    return build_transaction(
        view, transfer_moves(amount, symbol, sender, receiver, f'transfer_{symbol}'),
        origin=TransactionOrigin(OriginType.USER_ACTION, sender, symbol, "TRANSFER", request_id),
    )


def compute_transfer_from(view: LedgerView, symbol: str, caller: str, holder: str,
                          receiver: str, amount: int,
                          request_id: Optional[str] = None) -> PendingTransaction:
    """Move `holder`'s tokens on behalf of `caller`, spending `caller`'s allowance."""
    _check_amount(amount)
    state = view.get_unit_state(symbol)
    new_state = authorize(state, caller, holder, amount)
    _require_balance(view, symbol, holder, amount)
    state_changes = []
    if new_state is not None:
        state_changes.append(UnitStateChange(unit=symbol, old_state=state, new_state=new_state))
    return build_transaction(
        view, transfer_moves(amount, symbol, holder, receiver, f'transfer_{symbol}'), state_changes,
        origin=TransactionOrigin(OriginType.USER_ACTION, caller, symbol, "TRANSFER_FROM", request_id),
    )


def compute_mint(view: LedgerView, symbol: str, caller: str, to: str, amount: int,
                 request_id: Optional[str] = None) -> PendingTransaction:
    """
    Issue new principal tokens to `to`. Admin only, and only before maturity.

    Raises:
        Unauthorized: If the token has no admin or caller is not it
        ValueError: If the token has already matured
    """
    _check_amount(amount)
    state = view.get_unit_state(symbol)
    admin = state.get('admin')
    if not admin or caller != admin:
        raise Unauthorized(f"{caller} cannot mint {symbol}")
    if view.current_time >= state['maturity']:
        raise ValueError(f"cannot mint {symbol} at or after maturity {state['maturity']}")
    moves = [Move(amount, symbol, SYSTEM_WALLET, to, f'mint_{symbol}')] if amount else []
    return build_transaction(
        view, moves,
        origin=TransactionOrigin(OriginType.ADMIN, caller, symbol, "MINT", request_id),
    )
