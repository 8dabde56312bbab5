"""
Membership Queue Engine

Business rules for a subscription membership with a tenure-ordered payout queue:
- Tenure start and continuity from payment history
- Winner order and payout readiness
- Payment default enforcement and queue sync
- REST API and scheduled batches
"""

__version__ = "0.1.0"
