"""
authorization.py - Delegated redemption allowances

Allowances live in the principal token's unit state as
{holder: {spender: remaining}}. Functions here are pure: they take a state
dict and return the updated copy, leaving the caller to wrap it in a
UnitStateChange so the allowance update commits atomically with settlement.
"""

from __future__ import annotations
from typing import Dict, Optional

from .core import UnitState, InsufficientAllowance


def allowance(state: UnitState, holder: str, spender: str) -> int:
    """Remaining amount `spender` may consume from `holder`."""
    return state.get('allowances', {}).get(holder, {}).get(spender, 0)


def _with_allowance(state: UnitState, holder: str, spender: str, amount: int) -> UnitState:
    allowances: Dict[str, Dict[str, int]] = {
        h: dict(spenders) for h, spenders in state.get('allowances', {}).items()
    }
    spenders = allowances.setdefault(holder, {})
    if amount:
        spenders[spender] = amount
    else:
        spenders.pop(spender, None)
    if not spenders:
        del allowances[holder]
    return {**state, 'allowances': allowances}


def approve(state: UnitState, holder: str, spender: str, amount: int) -> UnitState:
    """
    Set the allowance `holder` grants `spender`, replacing any previous value.

    Raises:
        ValueError: If amount is negative or holder and spender are the same
    """
    if amount < 0:
        raise ValueError(f"allowance must be non-negative, got {amount}")
    if holder == spender:
        raise ValueError("holder cannot approve itself")
    return _with_allowance(state, holder, spender, amount)


def authorize(state: UnitState, caller: str, holder: str, amount: int) -> Optional[UnitState]:
    """
    Check that `caller` may consume `amount` of `holder`'s balance.

    A holder acting on its own balance is always authorized and the
    allowances map is left untouched (None is returned). A delegate needs an
    allowance of at least `amount`, which is decremented in the returned state.

    Raises:
        InsufficientAllowance: If the delegate's allowance is below amount
    """
    if caller == holder:
        return None
    allowed = allowance(state, holder, caller)
    if allowed < amount:
        raise InsufficientAllowance(allowed, amount)
    return _with_allowance(state, holder, caller, allowed - amount)
