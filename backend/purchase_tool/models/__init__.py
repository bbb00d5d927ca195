"""ORM Models — SQLAlchemy declarative models for accounts, items and purchases.

Invariants:
    - All models inherit from Base (db/base.py)
    - A Purchase owns its PurchaseLines (cascade delete)

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from purchase_tool.models.account import Account  # noqa: F401
from purchase_tool.models.item import Item  # noqa: F401
from purchase_tool.models.purchase import Purchase  # noqa: F401
from purchase_tool.models.purchase_line import PurchaseLine  # noqa: F401
