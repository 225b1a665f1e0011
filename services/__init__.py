"""
Services layer for the Supply Chain Console.

This module contains the business logic services:
- ProductCatalogLoader: Sequential full read of products and stages
- TransitionOrchestrator: Validate, price, estimate and submit one transition
- SupplyChainService: App-wide ledger collaborators, one per process
- SupplySession: One browser's ViewState, driven through the shared service

Execution Model:
    Flask request thread
    └── asyncio coroutine per request (async view)
        ├── catalog reads, one ledger call at a time
        └── one transition write per user action

Each ViewState is only mutated by the SupplySession that owns it.
"""

from .catalog_service import ProductCatalogLoader
from .transition_service import TransitionOrchestrator, InFlightRegistry, parse_product_id
from .supply_session import SupplyChainService, SupplySession

__all__ = [
    "ProductCatalogLoader",
    "TransitionOrchestrator",
    "InFlightRegistry",
    "parse_product_id",
    "SupplyChainService",
    "SupplySession",
]
