"""
settlement.py - Settlement executors for principal token redemption

Three interchangeable strategies move value once a redemption has passed the
maturity gate, been converted, and been authorized:

1. AuthorizedExternalCustody - an external custodian burns the principal and
   releases the underlying; the holder (or a delegate) must be authorized.
2. AdminExternalCustody - same custodian call, but only the token's admin may
   invoke it and no per-holder delegation is checked.
3. InternalCustody - the token burns the principal itself and releases the
   same amount of underlying from its own reserve wallet (parity, no yield).

The executor is chosen when a token is created and recorded in its state as
`custody`. Executors return moves; the ledger executes them atomically with
the lock and allowance state changes.
"""

from __future__ import annotations
from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from .core import (
    LedgerView, Move, UnitState, SYSTEM_WALLET,
    CUSTODY_AUTHORIZED_EXTERNAL, CUSTODY_ADMIN_EXTERNAL, CUSTODY_INTERNAL,
    Unauthorized,
)


def transfer_moves(quantity: int, unit_symbol: str, source: str, dest: str, contract_id: str) -> List[Move]:
    """Moves for a transfer, empty when there is nothing to move."""
    if quantity == 0:
        return []
    return [Move(quantity, unit_symbol, source, dest, contract_id)]


# =============================================================================
# CUSTODIAN
# =============================================================================

@runtime_checkable
class RedemptionCustodian(Protocol):
    """
    External contract that holds the underlying for externally-custodied tokens.

    The custodian does its own accounting: the moves it returns both burn the
    holder's principal tokens and release underlying to the receiver.
    """

    def authorized_redeem(
        self,
        view: LedgerView,
        underlying: str,
        maturity: datetime,
        holder: str,
        receiver: str,
        amount: int,
        token_symbol: str,
        payout: Optional[int] = None,
    ) -> List[Move]:
        ...


class LedgerCustodian:
    """
    Custodian backed by a ledger wallet holding the underlying asset.

    Burns `amount` principal tokens from the holder and pays `payout` (by
    default `amount`) underlying from its wallet to the receiver.
    """

    def __init__(self, wallet: str):
        if not wallet or not wallet.strip():
            raise ValueError("custodian wallet cannot be empty")
        self.wallet = wallet

    def authorized_redeem(
        self,
        view: LedgerView,
        underlying: str,
        maturity: datetime,
        holder: str,
        receiver: str,
        amount: int,
        token_symbol: str,
        payout: Optional[int] = None,
    ) -> List[Move]:
        if view.current_time < maturity:
            raise ValueError(f"custodian cannot redeem {token_symbol} before {maturity}")
        payout = amount if payout is None else payout
        return (
            transfer_moves(amount, token_symbol, holder, SYSTEM_WALLET, f'custodian_burn_{token_symbol}')
            + transfer_moves(payout, underlying, self.wallet, receiver, f'custodian_release_{token_symbol}')
        )

    def __repr__(self):
        return f"LedgerCustodian({self.wallet})"


# =============================================================================
# EXECUTORS
# =============================================================================

@runtime_checkable
class SettlementExecutor(Protocol):
    """
    Strategy that performs the burn/transfer of a validated redemption.

    Attributes:
        kind: Custody kind constant recorded in token state
        locks_rate: Whether the token captures a maturity rate
        requires_authorization: Whether delegated callers need an allowance
    """
    kind: str
    locks_rate: bool
    requires_authorization: bool

    def check_caller(self, state: UnitState, caller: str) -> None:
        """Raise Unauthorized if `caller` may not use this executor at all."""
        ...

    def settle(
        self,
        view: LedgerView,
        symbol: str,
        state: UnitState,
        holder: str,
        receiver: str,
        principal_amount: int,
        underlying_amount: int,
    ) -> List[Move]:
        """Return the moves that burn principal and deliver underlying."""
        ...


class AuthorizedExternalCustody:
    """Settle through an external custodian on behalf of an authorized caller."""

    kind = CUSTODY_AUTHORIZED_EXTERNAL
    locks_rate = True
    requires_authorization = True

    def __init__(self, custodian: RedemptionCustodian):
        self.custodian = custodian

    def check_caller(self, state: UnitState, caller: str) -> None:
        return None

    def settle(self, view, symbol, state, holder, receiver, principal_amount, underlying_amount):
        return self.custodian.authorized_redeem(
            view, state['underlying'], state['maturity'], holder, receiver,
            principal_amount, symbol, payout=underlying_amount,
        )

    def __repr__(self):
        return f"AuthorizedExternalCustody({self.custodian!r})"


class AdminExternalCustody:
    """
    Settle through an external custodian for any holder, admin callers only.

    Delegation is presumed to have been checked at the admin layer, so the
    allowance map is never consulted.
    """

    kind = CUSTODY_ADMIN_EXTERNAL
    locks_rate = True
    requires_authorization = False

    def __init__(self, custodian: RedemptionCustodian):
        self.custodian = custodian

    def check_caller(self, state: UnitState, caller: str) -> None:
        admin = state.get('admin')
        if not admin or caller != admin:
            raise Unauthorized(f"{caller} is not the admin of this principal token")

    def settle(self, view, symbol, state, holder, receiver, principal_amount, underlying_amount):
        return self.custodian.authorized_redeem(
            view, state['underlying'], state['maturity'], holder, receiver,
            principal_amount, symbol, payout=underlying_amount,
        )

    def __repr__(self):
        return f"AdminExternalCustody({self.custodian!r})"


class InternalCustody:
    """
    Burn principal in this ledger and release underlying from the token's reserve.

    No yield accrues, so principal and underlying amounts are always equal.
    An underfunded reserve makes the ledger reject the whole transaction.
    """

    kind = CUSTODY_INTERNAL
    locks_rate = False
    requires_authorization = True

    def check_caller(self, state: UnitState, caller: str) -> None:
        return None

    def settle(self, view, symbol, state, holder, receiver, principal_amount, underlying_amount):
        if principal_amount != underlying_amount:
            raise ValueError(
                f"internal custody settles at parity, got {principal_amount} principal "
                f"for {underlying_amount} underlying"
            )
        reserve = state['reserve_wallet']
        return (
            transfer_moves(principal_amount, symbol, holder, SYSTEM_WALLET, f'burn_{symbol}')
            + transfer_moves(underlying_amount, state['underlying'], reserve, receiver, f'release_{symbol}')
        )

    def __repr__(self):
        return "InternalCustody()"
