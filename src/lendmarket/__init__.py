"""
LendMarket - Peer-to-Peer Asset Lending

Owners of unique, non-fungible assets list them for temporary use by a
borrower in exchange for an upfront fee and/or a share of the revenue the
asset earns while on loan.

Main Components:
- Lending: listing registry, lifecycle engine, revenue split and indexes
- Contracts: asset registry, fungible tokens, escrow accounts, allow lists
- Observability: structured JSON logging and Prometheus metrics
"""

__version__ = "0.1.0"
__author__ = "LendMarket Development Team"

__all__ = []
