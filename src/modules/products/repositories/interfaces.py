"""Product repository interface."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the product catalog.

    ``get_by_id`` returns ``None`` for unknown or malformed ids; the caller
    decides whether that is a ``ProductNotFound``, an ``sva_not_found``
    upsell reason or a silently skipped item.
    """
