"""
Stock Kernel

Perishable stock ledger with an application (consumption) log:
- Atomic debit/credit of item stock on every application write
- Row-level serialization of concurrent writers per item
- Expiration and sufficiency checks inside the same unit of work
- Read-only low-stock / near-expiry reporting
"""

__version__ = "0.1.0"
