"""
Smart Wallet - Source Package

A personal finance tracker: one cash ledger, the obligations that feed
it (installments, receivables, bank certificates), an audit trail and
a snapshot store.

DESIGN PRINCIPLES:
1. The ledger engine is the only thing that moves the balance
2. Every settled period can be rolled back by deleting its transaction
3. AI suggests → Human confirms → System commits
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Smart Wallet Team"
