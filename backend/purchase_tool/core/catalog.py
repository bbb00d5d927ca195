"""Catalog Store & Filter Engine — item list, filter state, and the visible subset.

Invariants:
    - filter_items is PURE and stable: output preserves input order, never re-sorts
    - Categories combine with AND; search matches Name OR Description (case-insensitive)
    - Empty search key / empty type set / empty family set means "no constraint"
    - Missing Name/Description never match a search and never raise
    - CatalogState.visible is recomputed on every items or filter change — never stale

Design Decisions:
    - Frozen dataclasses: an Item is replaced wholesale on refresh, never edited in place
    - FilterState holds selections explicitly (ADR: filter criteria are never re-read
      from rendered markup; input handlers produce a new FilterState)
    - Option lists keep first-seen order: checkbox order matches catalog order
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation

from purchase_tool.core.domain_types import ItemId


@dataclass(frozen=True)
class Item:
    """Catalog entry available for purchase."""
    id: ItemId
    name: str | None
    price: Decimal | None = None
    description: str | None = None
    item_type: str | None = None
    family: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class FilterState:
    """Search text plus multi-select type/family selections."""
    search_key: str = ""
    selected_types: frozenset[str] = field(default_factory=frozenset)
    selected_families: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return (
            not self.search_key
            and not self.selected_types
            and not self.selected_families
        )


@dataclass(frozen=True)
class CatalogState:
    """Full item list, current filter, and the derived visible subset."""
    items: tuple[Item, ...] = ()
    filters: FilterState = field(default_factory=FilterState)
    visible: tuple[Item, ...] = ()

    @property
    def available_types(self) -> list[str]:
        return distinct_values(self.items, "item_type")

    @property
    def available_families(self) -> list[str]:
        return distinct_values(self.items, "family")

    def find(self, item_id: str) -> Item | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None


# ─── Filter Engine ───────────────────────────────────────────────

def _contains(text: str | None, key: str) -> bool:
    return bool(text) and key in text.lower()


def matches(item: Item, state: FilterState) -> bool:
    """True if item passes every active filter category."""
    key = state.search_key.lower()
    if key and not (_contains(item.name, key) or _contains(item.description, key)):
        return False
    if state.selected_types and item.item_type not in state.selected_types:
        return False
    if state.selected_families and item.family not in state.selected_families:
        return False
    return True


def filter_items(items, state: FilterState) -> list[Item]:
    """Derive the visible subset. Pure, stable, idempotent."""
    return [item for item in items if matches(item, state)]


def distinct_values(items, attr: str) -> list[str]:
    """Distinct non-empty attribute values in first-seen order."""
    seen: dict[str, None] = {}
    for item in items:
        value = getattr(item, attr)
        if value:
            seen.setdefault(value, None)
    return list(seen)


# ─── FilterState updates (input handlers) ───────────────────────

def with_search_key(state: FilterState, raw: str | None) -> FilterState:
    """Search input changed — the key is stored lowercased."""
    return replace(state, search_key=(raw or "").lower())


def _toggle(selected: frozenset[str], value: str, checked: bool) -> frozenset[str]:
    return selected | {value} if checked else selected - {value}


def toggle_type(state: FilterState, value: str, checked: bool) -> FilterState:
    return replace(
        state, selected_types=_toggle(state.selected_types, value, checked),
    )


def toggle_family(state: FilterState, value: str, checked: bool) -> FilterState:
    return replace(
        state,
        selected_families=_toggle(state.selected_families, value, checked),
    )


def clear_filters() -> FilterState:
    return FilterState()


# ─── CatalogState updates ────────────────────────────────────────

def replace_items(state: CatalogState, items) -> CatalogState:
    """Wholesale refresh of the item list; visible subset recomputed."""
    items = tuple(items)
    return replace(
        state, items=items, visible=tuple(filter_items(items, state.filters)),
    )


def apply_filter(state: CatalogState, new_filter: FilterState) -> CatalogState:
    """Filter changed; visible subset recomputed from the full list."""
    return replace(
        state, filters=new_filter,
        visible=tuple(filter_items(state.items, new_filter)),
    )


# ─── Price coercion ───────────────────────────────────────────

def coerce_price(value) -> Decimal | None:
    """Numeric record value -> Decimal. Anything non-numeric becomes None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite():
        return None
    return price
