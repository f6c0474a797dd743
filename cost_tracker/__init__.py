"""
Cost Tracker - Source Package

A personal expense tracker that keeps its entries in a remote,
account-scoped ledger reached through a wallet-signed RPC client.

DESIGN PRINCIPLES:
1. The remote ledger is the only source of truth
2. Mutate remotely, then re-fetch everything
3. Fail visibly, never corrupt the local view
4. Every step is auditable
5. The ledger client is swappable
"""

__version__ = "1.0.0"
__author__ = "Cost Tracker Team"
