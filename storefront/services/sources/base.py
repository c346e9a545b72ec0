"""Common shape for products coming from external catalogs."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from storefront.utils import generate_slug


@dataclass
class SupplierProduct:
    """A product as described by a supplier, ready to upsert.

    ``supplier_sku`` is the supplier's own identifier and is what keeps
    repeated syncs from creating duplicates.
    """

    supplier_sku: str
    name: str
    price: Decimal
    description: Optional[str] = None
    original_price: Optional[Decimal] = None
    image: Optional[str] = None
    inventory: Optional[int] = None
    featured: bool = False
    is_new: bool = False
    rating: Optional[Decimal] = None
    slug: Optional[str] = None
    source: Optional[str] = None

    def to_product_data(self) -> Dict[str, Any]:
        """Column values for ``ProductRepository.upsert_by_supplier_sku``.

        ``inventory`` is left out when the supplier does not report stock so
        an update keeps the current count.
        """
        data: Dict[str, Any] = {
            "supplier_sku": self.supplier_sku,
            "name": self.name,
            "slug": self.slug or generate_slug(self.name),
            "description": self.description,
            "price": self.price,
            "original_price": self.original_price,
            "image": self.image,
            "featured": self.featured,
            "is_new": self.is_new,
        }
        if self.inventory is not None:
            data["inventory"] = self.inventory
        if self.rating is not None:
            data["rating"] = self.rating
        return data
