"""Static quick-add item catalog."""

from __future__ import annotations

from snooker_pos.models import CatalogItem

QUICK_ITEMS: list[CatalogItem] = [
    CatalogItem("cold-drink", "Cold Drink", 25),
    CatalogItem("cigarette", "Cigarette", 15),
    CatalogItem("snacks", "Snacks", 30),
]

# Single-key shortcuts used by the table screen.
QUICK_ITEM_KEYS: dict[str, str] = {
    "c": "cold-drink",
    "g": "cigarette",
    "n": "snacks",
}

QUICK_ITEMS_BY_ID: dict[str, CatalogItem] = {item.item_id: item for item in QUICK_ITEMS}


def quick_item_for_key(key: str) -> CatalogItem | None:
    """Get the catalog item bound to a shortcut key, if any."""
    item_id = QUICK_ITEM_KEYS.get(key.lower())
    if item_id is None:
        return None
    return QUICK_ITEMS_BY_ID[item_id]
