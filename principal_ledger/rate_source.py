"""
rate_source.py - Exchange rate infrastructure for principal token settlement

Provides the exchange rate of a yield-bearing token versus its underlying asset.

Classes:
- YieldProtocol: Enumeration of rate providers a principal token can reference
- ExchangeRateSource: Protocol defining the rate interface
- StaticRateSource: Time-independent rates
- TimeSeriesRateSource: Time-varying rates with historical data

Rates are integers scaled by RATE_SCALE (1.0 == 10**18). Sources never cache:
every call answers "as of" the timestamp it is given.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple, Protocol, runtime_checkable
from bisect import bisect_right

from .core import RateUnavailable


class YieldProtocol(Enum):
    """Rate providers a principal token can be bound to."""
    COMPOUND = "compound"
    RARI = "rari"
    YEARN = "yearn"
    AAVE = "aave"
    EULER = "euler"
    LIDO = "lido"
    NONE = "none"


# (protocol, yield-bearing token) selector
RateKey = Tuple[YieldProtocol, str]


@runtime_checkable
class ExchangeRateSource(Protocol):
    """
    Protocol for exchange rate sources.

    Implementations return the current exchange rate of `yield_token` against
    its underlying, as of `timestamp`, or raise RateUnavailable.
    """

    def exchange_rate(self, protocol: YieldProtocol, yield_token: str, timestamp: datetime) -> int:
        """Get the exchange rate for a yield-bearing token at a specific timestamp."""
        ...


def _checked_rate(protocol: YieldProtocol, yield_token: str, rate: Optional[int]) -> int:
    if rate is None:
        raise RateUnavailable(f"No exchange rate for {protocol.value}:{yield_token}")
    if isinstance(rate, bool) or not isinstance(rate, int):
        raise RateUnavailable(f"Exchange rate for {protocol.value}:{yield_token} must be int, got {type(rate)}")
    if rate <= 0:
        raise RateUnavailable(f"Exchange rate for {protocol.value}:{yield_token} must be positive, got {rate}")
    return rate


class StaticRateSource:
    """
    Rate source with static rates (time-independent).

    Rates remain constant regardless of timestamp until updated.
    """

    def __init__(self, rates: Optional[Dict[RateKey, int]] = None):
        """
        Initialize with a static rate map.

        Args:
            rates: Dictionary mapping (protocol, yield_token) to scaled rates
        """
        self.rates: Dict[RateKey, int] = dict(rates or {})

    def exchange_rate(self, protocol: YieldProtocol, yield_token: str, timestamp: datetime) -> int:
        """Get static rate (timestamp is ignored)."""
        return _checked_rate(protocol, yield_token, self.rates.get((protocol, yield_token)))

    def update_rate(self, protocol: YieldProtocol, yield_token: str, rate: int):
        """Update the rate of a yield-bearing token."""
        self.rates[(protocol, yield_token)] = rate

    def __repr__(self):
        return f"StaticRateSource({len(self.rates)} rates)"


class TimeSeriesRateSource:
    """
    Rate source with time-varying rates.

    Uses the most recent rate at or before the requested timestamp.

    Supports two initialization patterns:
    - Empty initialization for incremental addition via add_rate()
    - Batch initialization with complete rate paths for simulations
    """

    def __init__(self, rate_paths: Optional[Dict[RateKey, List[Tuple[datetime, int]]]] = None):
        """
        Initialize rate source.

        Args:
            rate_paths: Optional dict mapping (protocol, yield_token) to a list
                        of (timestamp, rate) tuples.

        Examples:
            source = TimeSeriesRateSource({
                (YieldProtocol.COMPOUND, 'cDAI'): [(t0, 2 * RATE_SCALE), (t1, 3 * RATE_SCALE)],
            })
        """
        self.rate_history: Dict[RateKey, List[Tuple[datetime, int]]] = {}

        if rate_paths:
            for key, path in rate_paths.items():
                if not path:
                    continue
                self.rate_history[key] = sorted(path, key=lambda x: x[0])

    def add_rate(self, protocol: YieldProtocol, yield_token: str, timestamp: datetime, rate: int):
        """Add a rate observation at a specific time."""
        history = self.rate_history.setdefault((protocol, yield_token), [])
        history.append((timestamp, rate))
        history.sort(key=lambda x: x[0])

    def exchange_rate(self, protocol: YieldProtocol, yield_token: str, timestamp: datetime) -> int:
        """
        Get the rate at or before the specified timestamp.

        Raises:
            RateUnavailable: If no observation exists at or before timestamp
        """
        history = self.rate_history.get((protocol, yield_token))
        if not history:
            return _checked_rate(protocol, yield_token, None)

        timestamps = [ts for ts, _ in history]
        idx = bisect_right(timestamps, timestamp)
        if idx == 0:
            return _checked_rate(protocol, yield_token, None)
        return _checked_rate(protocol, yield_token, history[idx - 1][1])

    def __repr__(self):
        total_observations = sum(len(history) for history in self.rate_history.values())
        return f"TimeSeriesRateSource({len(self.rate_history)} tokens, {total_observations} observations)"
