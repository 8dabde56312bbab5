"""
Tenure, queue-ranking, payout-eligibility and default-enforcement rules.

Each rule has a pure core operating on already-fetched records and a thin
async wrapper that reads what it needs from a ``LedgerAccessor``.
"""
