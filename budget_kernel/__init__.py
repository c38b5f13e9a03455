"""
Budget Kernel

A department budget ledger with a strict three-phase lifecycle:
- Administrator allocates budget from a fixed pool
- Departments request funds from their own unspent allocation
- Administrator releases requested funds as an atomic transfer

Ledger invariants are checked after every transition.
"""

__version__ = "0.1.0"
