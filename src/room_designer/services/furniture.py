"""Furniture catalog lookups."""

import logging
from dataclasses import dataclass

from room_designer.adapters.backend_client import BackendClient
from room_designer.domain.errors import ValidationError
from room_designer.domain.furniture import (
    FURNITURE_CATEGORIES,
    FURNITURE_STYLES,
    FurnitureItemRef,
)
from room_designer.services.cache import Cache

logger = logging.getLogger(__name__)


@dataclass
class FurnitureCatalogService:
    """Fetches catalog items for the furniture browser."""

    client: BackendClient
    cache: Cache
    ttl_seconds: int = 300

    async def list_items(
        self, category: str | None = None, style: str | None = None
    ) -> list[FurnitureItemRef]:
        """Return catalog items matching the optional filters.

        Filters are matched case-insensitively against the known categories
        and styles; blank filters are ignored.
        """
        category = _canonical(category, FURNITURE_CATEGORIES, "category")
        style = _canonical(style, FURNITURE_STYLES, "style")
        cache_key = f"furniture:{category or '*'}:{style or '*'}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return list(cached)
        items = await self.client.list_furniture(category=category, style=style)
        logger.info(
            "Loaded %d furniture items (category=%s, style=%s)",
            len(items),
            category,
            style,
        )
        self.cache.set(cache_key, items, self.ttl_seconds)
        return list(items)


def _canonical(value: str | None, allowed: tuple[str, ...], label: str) -> str | None:
    value = (value or "").strip()
    if not value:
        return None
    for option in allowed:
        if option.lower() == value.lower():
            return option
    raise ValidationError(f"Unknown furniture {label}: {value}")
