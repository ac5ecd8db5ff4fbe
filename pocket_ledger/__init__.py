"""
Pocket Ledger - Source Package

A personal finance ledger: expenses, incomes and transfers between
accounts, with recurring expenses materialized on every activation.

DESIGN PRINCIPLES:
1. Balances are a cache of the transaction log, never edited on their own
2. Recurring expenses never materialize the same date twice
3. State goes in and comes out as whole snapshots
4. Every change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
