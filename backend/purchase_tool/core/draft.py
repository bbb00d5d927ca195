"""Item Draft — unsaved create-item form state and its pure update functions.

Invariants:
    - Field updates return a new DraftItem; nothing is mutated in place
    - check_draft short-circuits in order: name first, then price
    - build_item_fields only emits optional keys that carry a value

Design Decisions:
    - Price parsing is lenient (form input): unparsable, NaN or infinite -> None,
      which check_draft then reports as "price required"
    - is_saving lives on the draft so the form can disable its button from one object
"""

from dataclasses import dataclass, replace
from decimal import Decimal

from purchase_tool.core.catalog import coerce_price


NAME_REQUIRED = "name required"
PRICE_REQUIRED = "price required"


@dataclass(frozen=True)
class DraftItem:
    name: str = ""
    price: Decimal | None = None
    description: str | None = None
    item_type: str | None = None
    family: str | None = None
    is_saving: bool = False


def set_name(draft: DraftItem, raw: str | None) -> DraftItem:
    return replace(draft, name=raw or "")


def set_price(draft: DraftItem, raw) -> DraftItem:
    return replace(draft, price=coerce_price(raw))


def set_description(draft: DraftItem, raw: str | None) -> DraftItem:
    return replace(draft, description=raw or None)


def set_item_type(draft: DraftItem, raw: str | None) -> DraftItem:
    return replace(draft, item_type=raw or None)


def set_family(draft: DraftItem, raw: str | None) -> DraftItem:
    return replace(draft, family=raw or None)


def cleared(draft: DraftItem) -> DraftItem:
    """Reset every form field after a successful create."""
    return DraftItem(is_saving=draft.is_saving)


def check_draft(draft: DraftItem) -> tuple[str, str] | None:
    """Return (field, message) for the first failed precondition, else None."""
    if not draft.name or not draft.name.strip():
        return "name", NAME_REQUIRED
    if draft.price is None or not draft.price.is_finite():
        return "price", PRICE_REQUIRED
    return None


def build_item_fields(
    draft: DraftItem,
    image_url: str | None = None,
    account_id: str | None = None,
) -> dict:
    """Field set for the create-record call."""
    fields: dict = {"name": draft.name, "price": draft.price}
    if draft.description:
        fields["description"] = draft.description
    if draft.item_type:
        fields["item_type"] = draft.item_type
    if draft.family:
        fields["family"] = draft.family
    if image_url:
        fields["image_url"] = image_url
    if account_id:
        fields["account_id"] = account_id
    return fields
