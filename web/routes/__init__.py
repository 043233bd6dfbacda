"""
API routes package

One router module per feature:
- health: health check
- accounts: units and scout accounts
- ledger: journal entries, trial balance, balance audit
- billing: fair-share billing and voids
- payments: payments, card capture, refunds
- transfers: funds <-> billing, fundraising credits
- reconciliation: processor transaction matching
"""
