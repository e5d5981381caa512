"""
Bank Ledger

A banking-ledger REST API: users, bank accounts and money transfers
between accounts, with atomic balance updates and Decimal money math.
"""

__version__ = "1.0.0"
