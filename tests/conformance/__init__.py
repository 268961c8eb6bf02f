"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the principal token ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. rounding.py - Conversions never favour the redeemer
2. single_lock.py - The maturity rate is written exactly once
3. atomicity.py - A failed redemption leaves no partial effect
4. allowance_accounting.py - Delegated redemptions spend exactly their amount
5. idempotency.py - Duplicate execution handling
6. conservation.py - Principal and underlying are never created from nothing
7. temporal.py - Maturity ordering and historical reconstruction

These tests use hypothesis for property-based testing.
"""
