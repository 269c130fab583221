"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the stipend vault.

The tests are organized by invariant:
1. conservation.py - Shares outstanding equal deployed capital; double entry holds
2. atomicity.py - Failed vault calls leave no trace
3. idempotency.py - Duplicate and stale transactions are never applied twice
4. determinism.py - Same call sequence, same ledger
5. temporal.py - Time gates, catch-up accounting and price sensitivity

These tests use hypothesis for property-based testing.
"""
