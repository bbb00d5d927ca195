"""Account ORM — the shopper context a purchase session runs under.

Invariants:
    - is_manager gates item creation in the purchase session

Design Decisions:
    - is_manager stored as a column rather than derived from roles (ADR: one boolean
      is all the purchase page reads)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from purchase_tool.db.base import Base


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_manager: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    purchases: Mapped[list["Purchase"]] = relationship(
        "Purchase", back_populates="account", cascade="all, delete-orphan",
    )
