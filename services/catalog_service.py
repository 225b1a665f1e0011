"""
Product catalog loader.

Reads every product and its stage from the ledger into a fresh, immutable
CatalogSnapshot.

Read order:
    medicineCtr()
    MedicineStock(1), showStage(1)
    MedicineStock(2), showStage(2)
    ...

Reads are issued one at a time in increasing id order. The catalog is small
and this keeps the load on the endpoint bounded and the read order easy to
audit. Ledger writes that land between two reads are not detected; the
snapshot is consistent only as a whole load.

Usage:
    loader = ProductCatalogLoader(gateway)
    snapshot = await loader.load_all()
"""

from __future__ import annotations

from typing import List

from core.ledger_gateway import LedgerGateway
from models.product import CatalogEntry, CatalogSnapshot
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class ProductCatalogLoader:
    """
    Bulk reader for the product catalog.

    Always produces a full replacement snapshot. If any read fails, the
    partial rows are discarded and the error propagates - a caller never
    receives a mix of old and new reads.
    """

    def __init__(self, gateway: LedgerGateway):
        self._gateway = gateway

    async def load_all(self) -> CatalogSnapshot:
        """
        Read the full catalog.

        Returns:
            New CatalogSnapshot in ledger id order (empty when the count is 0)

        Raises:
            NetworkUnavailableError: If the ledger is unreachable
            ContractNotDeployedError: If the contract returns no data
        """
        count = await self._gateway.get_product_count()
        logger.debug(f"Loading catalog: {count} products")

        entries: List[CatalogEntry] = []
        for product_id in range(1, count + 1):
            product = await self._gateway.get_product(product_id)
            stage = await self._gateway.get_stage(product_id)
            entries.append(CatalogEntry(product=product, stage=stage))

        snapshot = CatalogSnapshot.from_entries(entries, product_count=count)
        logger.info(f"Catalog loaded: {len(snapshot)} products")
        return snapshot
