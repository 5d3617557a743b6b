"""
HustleLedger - Source Package

The finance core of a personal ledger: recurring transactions that
catch up on missed occurrences, and budgets that alert once per period
as spending crosses thresholds.

DESIGN PRINCIPLES:
1. Engines are pure; side effects go through injected collaborators
2. Templates generate ledger lines but are never ledger lines
3. A failing collaborator never fails a ledger write
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "HustleLedger Team"
