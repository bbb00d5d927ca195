"""Boundary Protocols — contracts between core and the external collaborators.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Every collaborator failure surfaces as RemoteError (or a subclass)
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, tests pass plain fakes (ADR: no inheritance hierarchy)
    - Async in Protocol: boundary methods are async because implementations do IO,
      but the core pure functions never are — workflows orchestrate the awaits
"""

from typing import Protocol

from purchase_tool.core.cart import CheckoutLine
from purchase_tool.core.catalog import Item
from purchase_tool.core.domain_types import AccountId, ItemId, PurchaseId


class ImageLookup(Protocol):
    """Contract for the remote image search service."""
    async def lookup_image(self, query: str) -> str | None: ...


class ItemRepository(Protocol):
    """Contract for Item record persistence."""
    async def list_items(self, account_id: AccountId | None = None) -> list[Item]: ...
    async def create_item_record(self, fields: dict) -> ItemId: ...


class AccountRepository(Protocol):
    """Contract for account context lookup.

    Returns {"account": {"id", "name", ...}, "is_manager": bool}.
    """
    async def get_account_context(self, account_id: AccountId) -> dict: ...


class PurchaseRepository(Protocol):
    """Contract for purchase creation — one purchase plus its lines."""
    async def create_purchase(
        self, account_id: AccountId, lines: list[CheckoutLine],
    ) -> PurchaseId: ...
