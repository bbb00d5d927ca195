"""Cart Manager — line merge, derived totals, and checkout validation.

Invariants:
    - At most one CartLine per item id; adding a present item increments its quantity
    - Lines keep insertion order; add_to_cart never reorders or touches other lines
    - grand_total / total_item_count are computed on read, never stored
    - validate_for_checkout reports every invalid line by item name — nothing dropped silently

Design Decisions:
    - add_to_cart returns AddResult(cart, change, quantity): the caller picks the
      confirmation message without diffing carts
    - CartLine keeps the Item snapshot taken at add time: the cart view and
      validation need name/price even if the catalog is refreshed
    - Merge keyed on item id: a rapid double-add converges to quantity 2, no locks needed
    - remove_purchased subtracts by item id: checkout and concurrent adds commute
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal

from purchase_tool.core.catalog import Item
from purchase_tool.core.domain_types import CartChange, ItemId


@dataclass(frozen=True)
class CartLine:
    """Item reference plus quantity (starts at 1)."""
    item: Item
    quantity: int = 1

    @property
    def item_id(self) -> ItemId:
        return self.item.id

    @property
    def line_total(self) -> Decimal:
        if self.item.price is None:
            return Decimal("0")
        return self.item.price * self.quantity


@dataclass(frozen=True)
class Cart:
    """Insertion-ordered cart lines."""
    lines: tuple[CartLine, ...] = ()

    def __len__(self) -> int:
        return len(self.lines)

    def line_for(self, item_id: str) -> CartLine | None:
        for line in self.lines:
            if line.item_id == item_id:
                return line
        return None


@dataclass(frozen=True)
class AddResult:
    cart: Cart
    change: CartChange
    quantity: int


@dataclass(frozen=True)
class CheckoutLine:
    """Validated, persistence-ready cart line."""
    item_id: ItemId
    quantity: int
    unit_cost: Decimal


@dataclass(frozen=True)
class LineProblem:
    item_name: str
    reason: str


@dataclass(frozen=True)
class CheckoutValidation:
    """Either checkout lines (all valid) or the problems found."""
    lines: list[CheckoutLine] = field(default_factory=list)
    problems: list[LineProblem] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.problems

    @property
    def problem_names(self) -> list[str]:
        return [p.item_name for p in self.problems]


# ─── Commands ────────────────────────────────────────────────────

def add_to_cart(cart: Cart, item: Item) -> AddResult:
    """Append a new line, or bump the quantity of the line for the same item."""
    for index, line in enumerate(cart.lines):
        if line.item_id == item.id:
            bumped = replace(line, quantity=line.quantity + 1)
            lines = cart.lines[:index] + (bumped,) + cart.lines[index + 1:]
            return AddResult(
                Cart(lines), CartChange.QUANTITY_UPDATED, bumped.quantity,
            )
    return AddResult(
        Cart(cart.lines + (CartLine(item=item),)), CartChange.ADDED, 1,
    )


def remove_purchased(cart: Cart, purchased: Cart) -> Cart:
    """Subtract a checked-out cart from the current one.

    Lines or quantities added after the checkout snapshot was taken survive.
    """
    lines = []
    for line in cart.lines:
        bought = purchased.line_for(line.item_id)
        remaining = line.quantity - (bought.quantity if bought else 0)
        if remaining > 0:
            lines.append(replace(line, quantity=remaining))
    return Cart(tuple(lines))


# ─── Queries ─────────────────────────────────────────────────────

def grand_total(cart: Cart) -> Decimal:
    return sum((line.line_total for line in cart.lines), Decimal("0"))


def total_item_count(cart: Cart) -> int:
    return sum(line.quantity for line in cart.lines)


def is_empty(cart: Cart) -> bool:
    return not cart.lines


def cart_view(cart: Cart) -> list[dict]:
    """Rows for the cart table: name, qty, price, line total."""
    return [
        {
            "item_id": line.item_id,
            "name": line.item.name,
            "quantity": line.quantity,
            "price": line.item.price,
            "total": line.line_total,
        }
        for line in cart.lines
    ]


# ─── Checkout validation ─────────────────────────────────────────

def _is_numeric(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, (int, float)):
        return value == value and value not in (float("inf"), float("-inf"))
    return False


def _display_name(line: CartLine) -> str:
    return line.item.name or str(line.item_id) or "Unnamed item"


def to_checkout_line(line: CartLine) -> CheckoutLine:
    """Coerce one cart line. unit_cost falls back to 0 when the price is unusable."""
    price = line.item.price
    unit_cost = Decimal(str(price)) if _is_numeric(price) else Decimal("0")
    return CheckoutLine(
        item_id=line.item_id, quantity=line.quantity, unit_cost=unit_cost,
    )


def validate_for_checkout(cart: Cart) -> CheckoutValidation:
    """Every line needs an item id and a numeric unit price. Pure."""
    problems: list[LineProblem] = []
    for line in cart.lines:
        if not line.item_id:
            problems.append(LineProblem(_display_name(line), "missing item id"))
        elif not _is_numeric(line.item.price):
            problems.append(LineProblem(_display_name(line), "missing price"))

    if problems:
        return CheckoutValidation(problems=problems)
    return CheckoutValidation(lines=[to_checkout_line(line) for line in cart.lines])
