"""Purchase Session — the single live catalog/cart/draft state for one shopper.

Invariants:
    - Item list loaded once per account context; replaced wholesale, never patched
    - Every filter change recomputes the visible list from the full list
    - Cart mutated only through core.cart; a successful checkout removes exactly the
      lines it submitted (adds made while it was in flight are kept)
    - Item creation gated on is_manager; rejected attempts make no collaborator call
    - Load failures become error toasts — the session stays usable

Design Decisions:
    - Outbox list for host events: the shell drains it after each interaction
      (ADR: explicit state object, host owns re-rendering)
    - Workflows injected, not built here: tests swap collaborators without patching
"""

import logging

from purchase_tool.core import catalog as catalog_ops
from purchase_tool.core import draft as draft_ops
from purchase_tool.core.cart import (
    AddResult, Cart, add_to_cart, cart_view, grand_total, is_empty, remove_purchased,
    total_item_count,
)
from purchase_tool.core.catalog import CatalogState, FilterState
from purchase_tool.core.domain_types import AccountId, WorkflowStatus
from purchase_tool.core.error_decoding import decode_error_message
from purchase_tool.core.errors import (
    ErrorContext, PurchaseToolError, ResourceNotFoundError, ValidationError,
)
from purchase_tool.core.notifications import cart_events, error_toast
from purchase_tool.core.repository_protocols import AccountRepository, ItemRepository
from purchase_tool.services.checkout import CheckoutWorkflow
from purchase_tool.services.collaborator_calls import WorkflowOutcome, bounded
from purchase_tool.services.create_item import ItemCreationWorkflow

logger = logging.getLogger(__name__)

MANAGER_REQUIRED = "manager access required"

_DRAFT_SETTERS = {
    "name": draft_ops.set_name,
    "price": draft_ops.set_price,
    "description": draft_ops.set_description,
    "item_type": draft_ops.set_item_type,
    "family": draft_ops.set_family,
}


class PurchaseSession:
    """Catalog store + cart + workflows for one account context."""

    def __init__(
        self,
        items: ItemRepository,
        accounts: AccountRepository,
        creator: ItemCreationWorkflow,
        checkout_flow: CheckoutWorkflow,
        account_id: AccountId | None = None,
        timeout_seconds: float | None = 30.0,
    ):
        self.items = items
        self.accounts = accounts
        self.creator = creator
        self.checkout_flow = checkout_flow
        self.account_id = account_id
        self.timeout_seconds = timeout_seconds

        self.account: dict = {}
        self.is_manager = False
        self.catalog = CatalogState()
        self.cart = Cart()
        self.selected_item_id: str | None = None
        self.is_loading = False
        self.events: list[dict] = []

    # ─── Loading ─────────────────────────────────────────────────

    async def open(self) -> None:
        """Load account context and items. No account id -> nothing to load."""
        if not self.account_id:
            return
        await self.load_account()
        await self.load_items()

    async def load_account(self) -> None:
        context = ErrorContext(account_id=self.account_id)
        try:
            result = await bounded(
                self.accounts.get_account_context(self.account_id),
                "load account", self.timeout_seconds, context,
            )
        except Exception as e:
            self._report_load_failure("account", e)
            return
        self.account = result.get("account") or {}
        self.is_manager = bool(result.get("is_manager"))

    async def load_items(self) -> None:
        self.is_loading = True
        try:
            items = await bounded(
                self.items.list_items(self.account_id),
                "load items", self.timeout_seconds,
                ErrorContext(account_id=self.account_id),
            )
        except Exception as e:
            self._report_load_failure("items", e)
            return
        finally:
            self.is_loading = False
        self.catalog = catalog_ops.replace_items(self.catalog, items)
        logger.info(
            f"Loaded {len(self.catalog.items)} items",
            extra={"account_id": self.account_id},
        )

    def _report_load_failure(self, what: str, error: Exception) -> None:
        message = decode_error_message(error)
        if isinstance(error, PurchaseToolError):
            logger.warning(
                f"Failed to load {what}: {message}",
                extra={"account_id": self.account_id, "error_code": error.code},
            )
        else:
            logger.error(
                f"Unexpected error loading {what}: {error}",
                extra={"account_id": self.account_id}, exc_info=error,
            )
        self.events.append(error_toast(message))

    # ─── Filtering ───────────────────────────────────────────────

    def _set_filter(self, new_filter: FilterState) -> None:
        self.catalog = catalog_ops.apply_filter(self.catalog, new_filter)

    def search(self, raw: str | None) -> None:
        self._set_filter(catalog_ops.with_search_key(self.catalog.filters, raw))

    def toggle_type(self, value: str, checked: bool) -> None:
        self._set_filter(catalog_ops.toggle_type(self.catalog.filters, value, checked))

    def toggle_family(self, value: str, checked: bool) -> None:
        self._set_filter(
            catalog_ops.toggle_family(self.catalog.filters, value, checked),
        )

    def set_filters(
        self,
        search: str | None = None,
        types: list[str] | None = None,
        families: list[str] | None = None,
    ) -> None:
        """Replace the whole filter at once (host sends full checkbox state)."""
        self._set_filter(FilterState(
            search_key=(search or "").lower(),
            selected_types=frozenset(types or ()),
            selected_families=frozenset(families or ()),
        ))

    def clear_filters(self) -> None:
        self._set_filter(catalog_ops.clear_filters())

    # ─── Cart ────────────────────────────────────────────────────

    def add_to_cart(self, item_id: str) -> AddResult:
        item = self.catalog.find(item_id)
        if item is None:
            raise ResourceNotFoundError("Item", item_id)
        result = add_to_cart(self.cart, item)
        self.cart = result.cart
        self.events.extend(cart_events(item, result))
        return result

    async def checkout(self) -> WorkflowOutcome:
        submitted = self.cart
        outcome = await self.checkout_flow.checkout(self.account_id, submitted)
        if outcome.succeeded:
            # adds that landed while the purchase was being created stay in the cart
            self.cart = remove_purchased(self.cart, submitted)
        self.events.extend(outcome.events)
        return outcome

    # ─── Details ─────────────────────────────────────────────────

    def show_details(self, item_id: str) -> None:
        if self.catalog.find(item_id) is None:
            raise ResourceNotFoundError("Item", item_id)
        self.selected_item_id = item_id

    def close_details(self) -> None:
        self.selected_item_id = None

    # ─── Item creation ───────────────────────────────────────────

    @property
    def can_create_items(self) -> bool:
        return self.is_manager

    def edit_draft(self, **fields) -> None:
        """Apply form input to the draft; unknown field names are rejected."""
        draft = self.creator.draft
        for name, value in fields.items():
            setter = _DRAFT_SETTERS.get(name)
            if setter is None:
                raise ValidationError(f"Unknown draft field '{name}'", name)
            draft = setter(draft, value)
        self.creator.draft = draft

    async def create_item(self) -> WorkflowOutcome:
        if not self.can_create_items:
            error = ValidationError(MANAGER_REQUIRED, "account")
            outcome = WorkflowOutcome(
                WorkflowStatus.FAILED, error=error, message=error.message,
                events=[error.to_event()],
            )
        else:
            outcome = await self.creator.submit(self.account_id)
        self.events.extend(outcome.events)
        return outcome

    # ─── Host view ───────────────────────────────────────────────

    def drain_events(self) -> list[dict]:
        events, self.events = self.events, []
        return events

    def snapshot(self) -> dict:
        """Everything the host needs to render the purchase page."""
        return {
            "account_id": self.account_id,
            "account": self.account,
            "is_manager": self.is_manager,
            "can_create_items": self.can_create_items,
            "is_loading": self.is_loading,
            "items": list(self.catalog.visible),
            "types": self.catalog.available_types,
            "families": self.catalog.available_families,
            "filters": self.catalog.filters,
            "selected_item_id": self.selected_item_id,
            "cart": {
                "lines": cart_view(self.cart),
                "grand_total": grand_total(self.cart),
                "total_items": total_item_count(self.cart),
                "checkout_disabled": is_empty(self.cart),
            },
            "draft": self.creator.draft,
        }
