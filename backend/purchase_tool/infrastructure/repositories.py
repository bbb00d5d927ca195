"""SQL Repositories — SQLAlchemy implementations of the core collaborator protocols.

Invariants:
    - Each call opens its own session via the injected scope (sessions outlive requests)
    - Record-level problems raise RemoteError with page/field errors in the record-service shape
    - SQLAlchemy failures surface as PersistenceError (mapped by DatabaseSessionManager)
    - create_purchase writes the purchase and all lines in ONE commit

Design Decisions:
    - Scope is a callable returning an async context manager: db_manager.session in
      production, a test session factory in tests
    - Ids cross the boundary as str (ItemId/AccountId/PurchaseId), UUID only inside
"""

import logging
import uuid
from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from purchase_tool.core.cart import CheckoutLine
from purchase_tool.core.catalog import Item, coerce_price
from purchase_tool.core.domain_types import AccountId, ItemId, PurchaseId
from purchase_tool.core.errors import RemoteError
from purchase_tool.models.account import Account as AccountModel
from purchase_tool.models.item import Item as ItemModel
from purchase_tool.models.purchase import Purchase as PurchaseModel
from purchase_tool.models.purchase_line import PurchaseLine as PurchaseLineModel

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]

MAX_NAME_LENGTH = 255


def _parse_id(value: str, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise RemoteError(
            f"Invalid id for {field}: {value}",
            field_errors={field: [f"invalid id '{value}'"]},
            http_status=400,
        )


def _to_item(row: ItemModel) -> Item:
    return Item(
        id=ItemId(str(row.id)),
        name=row.name,
        price=row.price,
        description=row.description,
        item_type=row.item_type,
        family=row.family,
        image_url=row.image_url,
    )


async def _require_account(db: AsyncSession, account_id: str) -> AccountModel:
    account = await db.get(AccountModel, _parse_id(account_id, "account_id"))
    if account is None:
        raise RemoteError(
            f"Account {account_id} not found",
            page_errors=[f"Account {account_id} does not exist"],
            http_status=404,
        )
    return account


class SqlItemRepository:
    def __init__(self, scope: SessionScope):
        self.scope = scope

    async def list_items(self, account_id: AccountId | None = None) -> list[Item]:
        """Every catalog item, ordered by name. account_id is accepted but not a filter."""
        async with self.scope() as db:
            result = await db.execute(select(ItemModel).order_by(ItemModel.name))
            return [_to_item(row) for row in result.scalars().all()]

    async def create_item_record(self, fields: dict) -> ItemId:
        self._check_fields(fields)
        async with self.scope() as db:
            account_uuid = None
            if fields.get("account_id"):
                account = await _require_account(db, fields["account_id"])
                account_uuid = account.id
            row = ItemModel(
                name=fields["name"],
                price=coerce_price(fields.get("price")),
                description=fields.get("description"),
                item_type=fields.get("item_type"),
                family=fields.get("family"),
                image_url=fields.get("image_url"),
                account_id=account_uuid,
            )
            db.add(row)
            await db.commit()
            logger.info("Item record created", extra={"item_id": str(row.id)})
            return ItemId(str(row.id))

    def _check_fields(self, fields: dict) -> None:
        """Record-level validation, reported the way the record store reports it."""
        field_errors: dict[str, list[str]] = {}
        name = fields.get("name") or ""
        if not name.strip():
            field_errors.setdefault("name", []).append("Required field is missing")
        elif len(name) > MAX_NAME_LENGTH:
            field_errors.setdefault("name", []).append(
                f"Name exceeds {MAX_NAME_LENGTH} characters",
            )
        price = coerce_price(fields.get("price"))
        if price is not None and price < 0:
            field_errors.setdefault("price", []).append("Price must not be negative")
        if field_errors:
            raise RemoteError(
                "Item record rejected", field_errors=field_errors,
                http_status=400,
            )


class SqlAccountRepository:
    def __init__(self, scope: SessionScope):
        self.scope = scope

    async def get_account_context(self, account_id: AccountId) -> dict:
        async with self.scope() as db:
            account = await _require_account(db, account_id)
            return {
                "account": {"id": str(account.id), "name": account.name},
                "is_manager": account.is_manager,
            }


class SqlPurchaseRepository:
    def __init__(self, scope: SessionScope):
        self.scope = scope

    async def create_purchase(
        self, account_id: AccountId, lines: list[CheckoutLine],
    ) -> PurchaseId:
        async with self.scope() as db:
            account = await _require_account(db, account_id)
            item_ids = [_parse_id(line.item_id, "item_id") for line in lines]
            result = await db.execute(
                select(ItemModel.id).where(ItemModel.id.in_(item_ids)),
            )
            known = set(result.scalars().all())
            missing = [str(i) for i in item_ids if i not in known]
            if missing:
                raise RemoteError(
                    "Unknown items in purchase",
                    page_errors=[f"Item {m} does not exist" for m in missing],
                    http_status=400,
                )

            purchase = PurchaseModel(
                account_id=account.id,
                total_items=sum(line.quantity for line in lines),
                total_amount=sum(
                    (line.unit_cost * line.quantity for line in lines),
                    Decimal("0"),
                ),
            )
            purchase.lines = [
                PurchaseLineModel(
                    item_id=item_uuid, amount=line.quantity,
                    unit_cost=line.unit_cost,
                )
                for item_uuid, line in zip(item_ids, lines)
            ]
            db.add(purchase)
            await db.commit()
            logger.info(
                "Purchase record created",
                extra={"purchase_id": str(purchase.id), "account_id": account_id},
            )
            return PurchaseId(str(purchase.id))
