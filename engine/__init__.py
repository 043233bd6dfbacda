"""
Engine

Ledger components built on core.ledger: projector, billing, voiding,
payments, reconciliation, fund transfers, and the LedgerService facade.
"""
