"""
Settle Up - Source Package

A personal expense-splitting assistant: record shared expenses, split
them among friends and work out the fewest payments that settle up.

DESIGN PRINCIPLES:
1. Balances are derived from expenses, never stored as truth
2. The settlement engine is pure and deterministic
3. Validate at the boundary, trust inside the engine
4. Every change to the ledger is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Settle Up Team"
