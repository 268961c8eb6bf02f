"""
principal_ledger - Principal Token Redemption Ledger

A ledger of fixed-maturity principal tokens that redeem into an underlying
asset once their maturity time is reached, at an exchange rate locked exactly
once at maturity.

Usage:
    from principal_ledger import (
        Ledger, asset, create_principal_token, PrincipalToken,
        AuthorizedExternalCustody, LedgerCustodian, StaticRateSource,
        YieldProtocol, CUSTODY_AUTHORIZED_EXTERNAL, RATE_SCALE,
    )

    ledger = Ledger("main", datetime(2025, 1, 1))
    ledger.register_unit(asset("DAI", "Dai Stablecoin"))
    ledger.register_unit(create_principal_token(
        "PT_DAI", "DAI principal 2025-06", "DAI", datetime(2025, 6, 1),
        CUSTODY_AUTHORIZED_EXTERNAL, YieldProtocol.COMPOUND, "cDAI", admin="lender",
    ))
    for wallet in ("lender", "alice", "redeemer"):
        ledger.register_wallet(wallet)

    rates = StaticRateSource({(YieldProtocol.COMPOUND, "cDAI"): 2 * RATE_SCALE})
    token = PrincipalToken(ledger, "PT_DAI",
                           AuthorizedExternalCustody(LedgerCustodian("redeemer")), rates)
    token.mint("lender", "alice", 100)

    ledger.advance_time(datetime(2025, 6, 1))
    paid = token.redeem("alice", 100, receiver="alice", holder="alice")
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    Unit,
    UnitStateChange,
    Matured,
    ExecuteResult,
    LedgerError,
    InsufficientFunds,
    BalanceConstraintViolation,
    TransferRuleViolation,
    UnitNotRegistered,
    WalletNotRegistered,
    StaleState,
    TransactionRejected,
    MaturityNotReached,
    InsufficientAllowance,
    ConversionOverflow,
    RateUnavailable,
    Unauthorized,
    no_self_custody_rule,
    asset,
    SYSTEM_WALLET,
    UNIT_TYPE_ASSET,
    UNIT_TYPE_PRINCIPAL_TOKEN,
    CUSTODY_AUTHORIZED_EXTERNAL,
    CUSTODY_ADMIN_EXTERNAL,
    CUSTODY_INTERNAL,
    RATE_SCALE,
    RATE_UNSET,
    UINT256_MAX,
)

# Ledger
from .ledger import Ledger

# Exchange rates
from .rate_source import (
    YieldProtocol,
    ExchangeRateSource,
    StaticRateSource,
    TimeSeriesRateSource,
)

# Conversion math
from .conversion import (
    checked_mul,
    mul_div_down,
    to_underlying,
    to_principal,
)

# Maturity gate
from .maturity import (
    GateStatus,
    LockDecision,
    evaluate_gate,
    maturity_status,
)

# Delegation
from .authorization import (
    allowance,
    approve,
    authorize,
)

# Settlement executors
from .settlement import (
    RedemptionCustodian,
    LedgerCustodian,
    SettlementExecutor,
    AuthorizedExternalCustody,
    AdminExternalCustody,
    InternalCustody,
)

# Principal tokens
from .units.principal_token import (
    create_principal_token,
    convert_to_underlying,
    convert_to_principal,
    preview_redeem,
    preview_withdraw,
    max_redeem,
    max_withdraw,
    get_token_status,
    compute_redeem,
    compute_withdraw,
    compute_approve,
    compute_transfer,
    compute_transfer_from,
    compute_mint,
)

from .token import PrincipalToken

__all__ = [
    # Core
    'LedgerView', 'Move', 'Transaction', 'PendingTransaction', 'TransactionOrigin', 'OriginType',
    'build_transaction',
    'Unit', 'UnitStateChange', 'Matured',
    'ExecuteResult', 'LedgerError', 'InsufficientFunds', 'BalanceConstraintViolation',
    'TransferRuleViolation', 'UnitNotRegistered', 'WalletNotRegistered', 'StaleState',
    'TransactionRejected', 'MaturityNotReached', 'InsufficientAllowance',
    'ConversionOverflow', 'RateUnavailable', 'Unauthorized',
    'no_self_custody_rule', 'asset',
    'SYSTEM_WALLET', 'UNIT_TYPE_ASSET', 'UNIT_TYPE_PRINCIPAL_TOKEN',
    'CUSTODY_AUTHORIZED_EXTERNAL', 'CUSTODY_ADMIN_EXTERNAL', 'CUSTODY_INTERNAL',
    'RATE_SCALE', 'RATE_UNSET', 'UINT256_MAX',
    # Ledger
    'Ledger',
    # Rates
    'YieldProtocol', 'ExchangeRateSource', 'StaticRateSource', 'TimeSeriesRateSource',
    # Conversion
    'checked_mul', 'mul_div_down', 'to_underlying', 'to_principal',
    # Maturity
    'GateStatus', 'LockDecision', 'evaluate_gate', 'maturity_status',
    # Delegation
    'allowance', 'approve', 'authorize',
    # Settlement
    'RedemptionCustodian', 'LedgerCustodian', 'SettlementExecutor',
    'AuthorizedExternalCustody', 'AdminExternalCustody', 'InternalCustody',
    # Principal tokens
    'create_principal_token', 'convert_to_underlying', 'convert_to_principal',
    'preview_redeem', 'preview_withdraw', 'max_redeem', 'max_withdraw',
    'get_token_status', 'compute_redeem', 'compute_withdraw',
    'compute_approve', 'compute_transfer', 'compute_transfer_from', 'compute_mint',
    'PrincipalToken',
]

__version__ = '1.0.0'
