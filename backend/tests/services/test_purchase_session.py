"""Purchase Session — catalog loading, filtering, cart, creation gate, checkout.

Tests cover:
    - open() loads account context and the full item list once
    - Load failures become error toasts; the session stays usable
    - Filter changes recompute visible items from the full list
    - add_to_cart merges by id and emits confirmation events
    - Non-managers cannot create items (no collaborator call)
    - Cart cleared only after a successful checkout
"""

import asyncio
from decimal import Decimal

import pytest

from purchase_tool.core.domain_types import WorkflowStatus
from purchase_tool.core.errors import (
    RemoteError, ResourceNotFoundError, ValidationError,
)
from purchase_tool.services.checkout import CheckoutWorkflow
from purchase_tool.services.create_item import ItemCreationWorkflow
from purchase_tool.services.purchase_session import MANAGER_REQUIRED, PurchaseSession

from tests.services.fakes import (
    FakeAccountRepository, FakeImageLookup, FakeItemRepository,
    FakePurchaseRepository, make_item,
)

WIDGET = make_item("a", "Widget", "10", item_type="Hardware", family="Tools")
GADGET = make_item("b", "Gadget", "5", item_type="Hardware", family="Toys")
GIZMO = make_item("c", "Gizmo", "7.5", item_type="Software", family="Tools")


def _session(
    items=None, accounts=None, purchases=None, images=None, account_id="acc-1",
):
    items = items or FakeItemRepository([WIDGET, GADGET, GIZMO])
    return PurchaseSession(
        items=items,
        accounts=accounts or FakeAccountRepository(),
        creator=ItemCreationWorkflow(items, images or FakeImageLookup(), timeout_seconds=1.0),
        checkout_flow=CheckoutWorkflow(purchases or FakePurchaseRepository(), timeout_seconds=1.0),
        account_id=account_id,
        timeout_seconds=1.0,
    )


def _toasts(session):
    return [e["data"] for e in session.drain_events() if e["type"] == "toast"]


# ─── Loading ─────────────────────────────────────────────────────

async def test_open_loads_account_and_items():
    items = FakeItemRepository([WIDGET, GADGET])
    session = _session(items=items, accounts=FakeAccountRepository(is_manager=True))

    await session.open()

    assert session.is_manager is True
    assert session.account["name"] == "Acme"
    assert session.catalog.visible == (WIDGET, GADGET)
    assert items.list_calls == ["acc-1"]
    assert session.is_loading is False


async def test_open_without_account_loads_nothing():
    items, accounts = FakeItemRepository([WIDGET]), FakeAccountRepository()
    session = _session(items=items, accounts=accounts, account_id=None)

    await session.open()

    assert items.list_calls == []
    assert accounts.calls == []
    assert session.catalog.items == ()


async def test_item_load_failure_becomes_toast():
    items = FakeItemRepository(error=RemoteError("x", page_errors=["Service down"]))
    session = _session(items=items)

    await session.open()

    assert session.catalog.items == ()
    assert session.is_loading is False
    assert _toasts(session) == [
        {"title": "Error", "message": "Service down", "variant": "error"},
    ]


async def test_account_load_failure_keeps_non_manager():
    accounts = FakeAccountRepository(is_manager=True, error=RemoteError("no such account"))
    session = _session(accounts=accounts)

    await session.open()

    assert session.is_manager is False
    assert session.catalog.items == (WIDGET, GADGET, GIZMO)
    assert _toasts(session)[0]["message"] == "no such account"


# ─── Filtering & details ─────────────────────────────────────────

async def test_search_then_clear_restores_full_list():
    session = _session()
    await session.open()

    session.search("GAD")
    assert session.catalog.visible == (GADGET,)
    session.clear_filters()
    assert session.catalog.visible == (WIDGET, GADGET, GIZMO)


async def test_type_and_family_filters_intersect():
    session = _session()
    await session.open()

    session.toggle_type("Hardware", True)
    session.toggle_family("Tools", True)
    assert session.catalog.visible == (WIDGET,)

    session.toggle_type("Hardware", False)
    assert session.catalog.visible == (WIDGET, GIZMO)


async def test_set_filters_replaces_whole_filter():
    session = _session()
    await session.open()
    session.toggle_family("Toys", True)

    session.set_filters(search="Gi", types=["Software"], families=None)

    assert session.catalog.filters.search_key == "gi"
    assert session.catalog.filters.selected_families == frozenset()
    assert session.catalog.visible == (GIZMO,)


async def test_available_options_are_distinct():
    session = _session()
    await session.open()
    snap = session.snapshot()
    assert snap["types"] == ["Hardware", "Software"]
    assert snap["families"] == ["Tools", "Toys"]


async def test_show_and_close_details():
    session = _session()
    await session.open()

    session.show_details("b")
    assert session.selected_item_id == "b"
    session.close_details()
    assert session.selected_item_id is None

    with pytest.raises(ResourceNotFoundError):
        session.show_details("missing")


# ─── Cart & checkout ─────────────────────────────────────────────

async def test_add_twice_merges_and_totals():
    session = _session(items=FakeItemRepository([WIDGET, GADGET]))
    await session.open()
    session.search("wid")
    session.drain_events()

    session.add_to_cart("a")
    result = session.add_to_cart("a")

    assert result.quantity == 2
    snap = session.snapshot()
    assert snap["cart"]["grand_total"] == Decimal("20")
    assert snap["cart"]["total_items"] == 2
    assert [t["message"] for t in _toasts(session)] == [
        "Widget added to cart", "Widget quantity updated to 2",
    ]


async def test_add_unknown_item_raises():
    session = _session()
    await session.open()
    with pytest.raises(ResourceNotFoundError):
        session.add_to_cart("nope")


async def test_checkout_success_clears_cart():
    purchases = FakePurchaseRepository(purchase_id="p-9")
    session = _session(purchases=purchases)
    await session.open()
    session.add_to_cart("a")
    session.add_to_cart("b")

    outcome = await session.checkout()

    assert outcome.succeeded
    assert len(session.cart) == 0
    assert session.snapshot()["cart"]["checkout_disabled"] is True
    assert any(e["type"] == "checkout_succeeded" for e in session.drain_events())


async def test_checkout_failure_keeps_cart():
    purchases = FakePurchaseRepository(error=RemoteError("x", body_message="Limit reached"))
    session = _session(purchases=purchases)
    await session.open()
    session.add_to_cart("a")
    session.drain_events()

    outcome = await session.checkout()

    assert outcome.status is WorkflowStatus.FAILED
    assert len(session.cart) == 1
    assert _toasts(session)[0]["message"] == "Limit reached"


# ─── Item creation ───────────────────────────────────────────────

async def test_non_manager_cannot_create():
    items = FakeItemRepository([WIDGET])
    session = _session(items=items, accounts=FakeAccountRepository(is_manager=False))
    await session.open()
    session.edit_draft(name="New", price="3")

    outcome = await session.create_item()

    assert outcome.status is WorkflowStatus.FAILED
    assert outcome.message == MANAGER_REQUIRED
    assert items.created == []


async def test_manager_creates_item_and_draft_resets():
    items = FakeItemRepository([WIDGET])
    session = _session(items=items, accounts=FakeAccountRepository(is_manager=True))
    await session.open()
    session.edit_draft(name="New", price="3.50", description="Fresh")

    outcome = await session.create_item()

    assert outcome.succeeded
    assert items.created[0]["price"] == Decimal("3.50")
    assert items.created[0]["account_id"] == "acc-1"
    assert session.snapshot()["draft"].name == ""
    # the visible list is not reloaded after creation
    assert session.catalog.items == (WIDGET,)


async def test_edit_draft_rejects_unknown_field():
    session = _session()
    with pytest.raises(ValidationError):
        session.edit_draft(colour="red")


async def test_adds_during_checkout_survive_success():
    gate = asyncio.Event()
    purchases = FakePurchaseRepository(gate=gate)
    session = _session(purchases=purchases)
    await session.open()
    session.add_to_cart("a")

    pending = asyncio.create_task(session.checkout())
    await asyncio.sleep(0.01)
    session.add_to_cart("b")
    session.add_to_cart("a")
    gate.set()
    outcome = await pending

    assert outcome.succeeded
    assert [line.item_id for line in purchases.calls[0]["lines"]] == ["a"]
    assert [(line.item_id, line.quantity) for line in session.cart.lines] == [
        ("a", 1), ("b", 1),
    ]


async def test_unexpected_load_error_becomes_toast():
    items = FakeItemRepository(error=RuntimeError("Database not initialized"))
    accounts = FakeAccountRepository(error=RuntimeError("Database not initialized"))
    session = _session(items=items, accounts=accounts)

    await session.open()

    assert session.is_loading is False
    assert [t["message"] for t in _toasts(session)] == [
        "Database not initialized", "Database not initialized",
    ]
