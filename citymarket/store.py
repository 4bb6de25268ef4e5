# citymarket/store.py
"""Query and add helpers for marketplace listings.

All helpers are pure: they take a sequence of items and return a new tuple,
leaving the input untouched. ``ListingStore`` owns the master sequence and
swaps it wholesale on every add, so a reader always sees a complete snapshot.
"""
import threading
from typing import Dict, Iterable, Optional, Sequence, Tuple
from .models import ALL_CATEGORY, Category, MarketplaceItem
from .utils import logger

SECTION_PREVIEW_LIMIT = 12
SEARCH_SUGGESTIONS = ("electronics", "furniture", "clothing", "automotive")

def filter_by_category(items: Sequence[MarketplaceItem], category_id: str) -> Tuple[MarketplaceItem, ...]:
    if category_id == ALL_CATEGORY:
        return tuple(items)
    return tuple(item for item in items if item.category == category_id)

def _matches(item: MarketplaceItem, needle: str) -> bool:
    fields = (item.title, item.description, item.category, item.seller.name, item.location)
    return any(needle in field.lower() for field in fields)

def search(items: Sequence[MarketplaceItem], query: str) -> Tuple[MarketplaceItem, ...]:
    # no query shows nothing, unlike the "all" category which shows everything
    if not query or not query.strip():
        return ()
    needle = query.lower()
    return tuple(item for item in items if _matches(item, needle))

def group_by_category(
    items: Sequence[MarketplaceItem],
    categories: Optional[Iterable[Category]] = None,
) -> Dict[str, Tuple[MarketplaceItem, ...]]:
    """Bucket items per category id.

    With ``categories`` given, groups follow that order and items whose
    category is not listed are dropped. Without it every category seen in
    ``items`` gets a group, in first-seen order.
    """
    buckets: Dict[str, list] = {}
    for item in items:
        buckets.setdefault(item.category, []).append(item)
    if categories is None:
        order = list(buckets)
    else:
        order = [category.id for category in categories]
    return {
        category_id: tuple(buckets[category_id])
        for category_id in order
        if category_id != ALL_CATEGORY and buckets.get(category_id)
    }

def add_item(items: Sequence[MarketplaceItem], new_item: MarketplaceItem) -> Tuple[MarketplaceItem, ...]:
    return (new_item, *items)

def get_item(items: Sequence[MarketplaceItem], item_id: str) -> Optional[MarketplaceItem]:
    return next((item for item in items if item.id == item_id), None)

def find_category(categories: Iterable[Category], category_id: str) -> Optional[Category]:
    return next((category for category in categories if category.id == category_id), None)


class ListingStore:
    """Holds the current listings for the lifetime of the process."""

    def __init__(self, items: Iterable[MarketplaceItem] = (), categories: Iterable[Category] = ()):
        self._items = tuple(items)
        self.categories = tuple(categories)
        self._lock = threading.Lock()

    @property
    def items(self) -> Tuple[MarketplaceItem, ...]:
        return self._items

    def _unique_id(self, item_id: str) -> str:
        taken = {item.id for item in self._items}
        if item_id not in taken:
            return item_id
        if item_id.isdigit():
            # time-based ids move forward to the next free millisecond
            candidate = int(item_id) + 1
            while str(candidate) in taken:
                candidate += 1
            return str(candidate)
        suffix = 2
        while f"{item_id}-{suffix}" in taken:
            suffix += 1
        return f"{item_id}-{suffix}"

    def add(self, new_item: MarketplaceItem) -> MarketplaceItem:
        """Prepend ``new_item`` and return it as stored (its id may be bumped)."""
        # writers are serialised so concurrent adds cannot drop each other
        with self._lock:
            item_id = self._unique_id(new_item.id)
            if item_id != new_item.id:
                new_item = new_item.model_copy(update={"id": item_id})
            self._items = add_item(self._items, new_item)
        logger.info("Listed item %s in %s", new_item.id, new_item.category)
        return new_item

    def by_category(self, category_id: str):
        return filter_by_category(self._items, category_id)

    def search(self, query: str):
        return search(self._items, query)

    def grouped(self):
        return group_by_category(self._items, self.categories or None)

    def get(self, item_id: str):
        return get_item(self._items, item_id)

    def category(self, category_id: str):
        return find_category(self.categories, category_id)
