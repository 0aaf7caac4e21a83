"""
LendMarket Core Module

Core functionality for the lending marketplace including:
- Lending registry and lifecycle engine
- Contract collaborators (assets, tokens, escrow, allow lists)
- Configuration, logging and metrics
"""

__all__ = []
