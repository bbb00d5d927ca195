"""Notification Events — pure builders for every signal the core emits to its host UI.

Invariants:
    - Every event is a dict with "type" and "data" keys (JSON-serializable as-is)
    - Toast variants are ToastVariant values: info, success, error
    - Cart confirmations differ by branch: "added" vs "quantity updated to N"

Design Decisions:
    - Dicts over classes: the host forwards events untouched over HTTP (ADR: same
      envelope shape as error events from errors.to_event())
    - Builders are pure; the session appends them to its outbox
"""

from purchase_tool.core.cart import AddResult
from purchase_tool.core.catalog import Item
from purchase_tool.core.domain_types import CartChange, ToastVariant


def toast_event(
    title: str, message: str, variant: ToastVariant = ToastVariant.INFO,
) -> dict:
    return {
        "type": "toast",
        "data": {"title": title, "message": message, "variant": variant.value},
    }


def error_toast(message: str) -> dict:
    return toast_event("Error", message, ToastVariant.ERROR)


def cart_events(item: Item, result: AddResult) -> list[dict]:
    """Signal + confirmation toast for one add_to_cart call."""
    name = item.name or str(item.id)
    if result.change is CartChange.QUANTITY_UPDATED:
        return [
            {
                "type": "cart_quantity_updated",
                "data": {"item_id": item.id, "quantity": result.quantity},
            },
            toast_event(
                "Quantity updated",
                f"{name} quantity updated to {result.quantity}",
                ToastVariant.SUCCESS,
            ),
        ]
    return [
        {"type": "item_added_to_cart", "data": {"item_id": item.id}},
        toast_event("Added", f"{name} added to cart", ToastVariant.SUCCESS),
    ]


def item_created_events(item_id: str) -> list[dict]:
    return [
        {"type": "item_created", "data": {"item_id": item_id}},
        toast_event("Success", "Item created", ToastVariant.SUCCESS),
    ]


def checkout_succeeded_events(purchase_id: str, record_path: str) -> list[dict]:
    """Success toast plus the navigation signal to the purchase record."""
    return [
        toast_event("Success", "Purchase created", ToastVariant.SUCCESS),
        {
            "type": "checkout_succeeded",
            "data": {"purchase_id": purchase_id, "navigate_to": record_path},
        },
    ]
