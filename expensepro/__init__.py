"""
ExpensePro - Derived-State Reconciliation Engine

Keeps three parallel records consistent with each other:
general ledger transactions, peer-to-peer loans and gig-delivery
work sessions, plus the one quantity derived from them: the fuel
left in the vehicle tank.

DESIGN PRINCIPLES:
1. Durable first, authoritative second (no optimistic in-memory state)
2. Fail early, fail visibly
3. Never post a settlement twice
4. Catch-up is deterministic, whatever the idle gap
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "ExpensePro Team"
