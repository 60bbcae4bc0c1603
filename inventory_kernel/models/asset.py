"""
Module: inventory_kernel.models.asset
Responsibility: ORM persistence for the ledger's per-asset counters.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - DB check constraint keeps 0 <= available <= total_quantity, so a bug
      above the ORM can never commit a negative or inflated counter.
"""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base
from inventory_kernel.domain.claim import Asset, AssetKind


class AssetModel(Base):
    """Persistent asset counters.  ``id`` is the asset id."""

    __tablename__ = "assets"

    __table_args__ = (
        CheckConstraint(
            "available >= 0 AND available <= total_quantity",
            name="ck_assets_available_bounds",
        ),
        CheckConstraint(
            "kind IN ('consumable', 'non_consumable')",
            name="ck_assets_valid_kind",
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    total_quantity: Mapped[int] = mapped_column(nullable=False)
    available: Mapped[int] = mapped_column(nullable=False)
    borrowing_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )

    def __repr__(self) -> str:
        return (
            f"<Asset {self.id} {self.name} "
            f"available={self.available}/{self.total_quantity}>"
        )

    def to_dto(self) -> Asset:
        """Convert ORM model to frozen domain DTO."""
        return Asset(
            asset_id=self.id,
            name=self.name,
            kind=AssetKind(self.kind),
            total_quantity=self.total_quantity,
            available=self.available,
            borrowing_enabled=self.borrowing_enabled,
        )

    @classmethod
    def from_dto(cls, dto: Asset) -> AssetModel:
        """Create ORM model from domain DTO."""
        return cls(
            id=dto.asset_id,
            name=dto.name,
            kind=dto.kind.value,
            total_quantity=dto.total_quantity,
            available=dto.available,
            borrowing_enabled=dto.borrowing_enabled,
        )

    def apply_dto(self, dto: Asset) -> None:
        """Copy mutable fields from a DTO onto this row."""
        self.name = dto.name
        self.kind = dto.kind.value
        self.total_quantity = dto.total_quantity
        self.available = dto.available
        self.borrowing_enabled = dto.borrowing_enabled
