"""
Units module - Factory and settlement functions for principal tokens.

All unit factories and related functions are re-exported here for convenience.
"""

from .principal_token import (
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

__all__ = [
    'create_principal_token',
    'convert_to_underlying',
    'convert_to_principal',
    'preview_redeem',
    'preview_withdraw',
    'max_redeem',
    'max_withdraw',
    'get_token_status',
    'compute_redeem',
    'compute_withdraw',
    'compute_approve',
    'compute_transfer',
    'compute_transfer_from',
    'compute_mint',
]
