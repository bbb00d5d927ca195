"""Purchase ORM — one checkout, owning its lines.

Invariants:
    - Always belongs to an Account (account_id FK)
    - total_amount = sum(line.amount * line.unit_cost), computed at creation

Design Decisions:
    - total_amount denormalized: purchase lists don't JOIN lines to show a total
    - cascade delete for lines: a purchase owns all its lines
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from purchase_tool.db.base import Base


class Purchase(Base):
    __tablename__ = "purchases"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    total_items: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    account: Mapped["Account"] = relationship(
        "Account", back_populates="purchases",
    )
    lines: Mapped[list["PurchaseLine"]] = relationship(
        "PurchaseLine", back_populates="purchase",
        cascade="all, delete-orphan", lazy="selectin",
    )
