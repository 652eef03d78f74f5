"""
Accounting Service

Manages bank accounts through a two-phase activation workflow, keeps a
per-account transaction ledger and derives balances from it.
"""

__version__ = "0.1.0"
