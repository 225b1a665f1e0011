"""
Product catalog data models.

These models represent point-in-time reads of the supply chain contract.
Used by the catalog loader for display and by the orchestrator when it
re-reads a single product before a transition.

Immutability:
    - Product and CatalogSnapshot are frozen dataclasses
    - A reload builds a brand new snapshot; old snapshots are never patched
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple

from core.payment import DEFAULT_DECIMALS, format_major_units


# Field order of the contract's Medicine struct, used when the ABI outputs
# carry no names
PRODUCT_FIELDS: Tuple[str, ...] = (
    "id",
    "name",
    "destinationCompanyName",
    "price",
    "quantity",
    "expirationDate",
    "timestamp",
)

StageLabel = str


def _format_date(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime("%Y-%m-%d")


def _format_datetime(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


@dataclass(frozen=True)
class Product:
    """
    A single product record as stored on the ledger.

    Read-only to this application - the contract owns every field.
    """

    id: int
    """Ledger-assigned identifier, sequential from 1."""

    name: str
    """Product name."""

    destination_company_name: str
    """Company the product is shipped to."""

    price: int
    """Unit price in minor units (wei)."""

    quantity: int
    """Number of units."""

    expiration_date: int
    """Expiration date, seconds since epoch."""

    timestamp: int
    """Creation time on the ledger, seconds since epoch."""

    def price_display(self, decimals: int = DEFAULT_DECIMALS) -> str:
        """Unit price in major units for display (e.g. '1.5')."""
        return format_major_units(self.price, decimals)

    @property
    def expiration_display(self) -> str:
        """Expiration date as YYYY-MM-DD."""
        return _format_date(self.expiration_date)

    @property
    def timestamp_display(self) -> str:
        """Creation timestamp as a full date and time."""
        return _format_datetime(self.timestamp)

    def to_dict(self, decimals: int = DEFAULT_DECIMALS) -> Dict[str, Any]:
        """
        Convert to dictionary for templates and JSON responses.

        ``price`` is emitted as a string so JSON clients never parse it
        into a float.
        """
        return {
            "id": self.id,
            "name": self.name,
            "destinationCompanyName": self.destination_company_name,
            "price": str(self.price),
            "price_display": self.price_display(decimals),
            "quantity": self.quantity,
            "expirationDate": self.expiration_date,
            "expiration_display": self.expiration_display,
            "timestamp": self.timestamp,
            "timestamp_display": self.timestamp_display,
        }

    @classmethod
    def from_ledger(
        cls,
        record: Any,
        field_names: Optional[Sequence[str]] = None
    ) -> "Product":
        """
        Create a Product from a MedicineStock(id) call result.

        web3 returns public struct getters as a tuple; some providers and
        test doubles return a mapping instead. Both are accepted.

        Args:
            record: Tuple/list of struct values, or a mapping keyed by field name
            field_names: ABI output names in order (defaults to PRODUCT_FIELDS)

        Returns:
            Product with integer fields coerced to int

        Raises:
            ValueError: If the record is missing fields
        """
        if isinstance(record, Mapping):
            data = dict(record)
        else:
            names = [n for n in (field_names or ()) if n] or list(PRODUCT_FIELDS)
            values = list(record)
            if len(values) < len(names):
                raise ValueError(
                    f"Product record has {len(values)} fields, expected {len(names)}"
                )
            data = dict(zip(names, values))

        missing = [name for name in PRODUCT_FIELDS if name not in data]
        if missing:
            raise ValueError(f"Product record missing fields: {', '.join(missing)}")

        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            destination_company_name=str(data["destinationCompanyName"]),
            price=int(data["price"]),
            quantity=int(data["quantity"]),
            expiration_date=int(data["expirationDate"]),
            timestamp=int(data["timestamp"]),
        )


@dataclass(frozen=True)
class CatalogEntry:
    """One row of the catalog: a product and its current stage label."""

    product: Product
    stage: StageLabel

    @property
    def product_id(self) -> int:
        return self.product.id


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Full in-memory copy of every product and its stage.

    This is a FROZEN dataclass - a reload replaces the whole snapshot.
    Entries keep the order they were read in, which is ledger id order
    ``1..N``.

    The snapshot is consistent only at the granularity of one full load:
    ledger writes between two per-id reads are not detected.
    """

    loaded_at: datetime
    """When the load finished."""

    entries: Tuple[CatalogEntry, ...]
    """Catalog rows in ledger id order."""

    product_count: int = 0
    """Counter value reported by the ledger for this load."""

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def ids(self) -> Tuple[int, ...]:
        """Product IDs in iteration order."""
        return tuple(entry.product_id for entry in self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def age_seconds(self) -> float:
        """How old this snapshot is in seconds."""
        return (datetime.now(timezone.utc) - self.loaded_at).total_seconds()

    def get(self, product_id: int) -> Optional[CatalogEntry]:
        """
        Find a catalog row by product ID.

        Args:
            product_id: Ledger product ID

        Returns:
            CatalogEntry if present, None otherwise
        """
        for entry in self.entries:
            if entry.product_id == product_id:
                return entry
        return None

    def to_dict(self, decimals: int = DEFAULT_DECIMALS) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "loaded_at": self.loaded_at.isoformat(),
            "product_count": self.product_count,
            "products": [
                {**entry.product.to_dict(decimals), "stage": entry.stage}
                for entry in self.entries
            ],
        }

    @classmethod
    def from_entries(cls, entries: Sequence[CatalogEntry], product_count: int) -> "CatalogSnapshot":
        """Create a snapshot stamped with the current time."""
        return cls(
            loaded_at=datetime.now(timezone.utc),
            entries=tuple(entries),
            product_count=product_count,
        )

    @classmethod
    def create_empty(cls) -> "CatalogSnapshot":
        """Create an empty snapshot (before the first load)."""
        return cls(
            loaded_at=datetime(2000, 1, 1, tzinfo=timezone.utc),
            entries=(),
            product_count=0,
        )
