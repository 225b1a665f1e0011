"""
Data models for the Supply Chain Console.

This module contains:
- Product / CatalogSnapshot: Immutable reads of the supply chain contract
- Operation / TransitionRequest / TransitionReceipt: One stage transition
- ViewState: What the page renders (snapshot, loading flag, last error)

Snapshots are frozen dataclasses; a reload always builds a new one.
"""

from .product import Product, CatalogEntry, CatalogSnapshot, StageLabel, PRODUCT_FIELDS
from .transition import Operation, TransitionRequest, TransitionReceipt, TransitionState
from .view_state import ViewState

__all__ = [
    # Catalog models
    "Product",
    "CatalogEntry",
    "CatalogSnapshot",
    "StageLabel",
    "PRODUCT_FIELDS",
    # Transition models
    "Operation",
    "TransitionRequest",
    "TransitionReceipt",
    "TransitionState",
    # View
    "ViewState",
]
