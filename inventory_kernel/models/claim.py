"""
Module: inventory_kernel.models.claim
Responsibility: ORM persistence for ledger claims.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - Quantities are positive; returned + consumed never exceeds quantity.
    - Only known kinds and states can be stored.
    - Covering index (asset_id, state) backs open-claim lookups.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime, UUIDString
from inventory_kernel.domain.claim import Claim, ClaimKind, ClaimState


class ClaimModel(Base):
    """Persistent claim.  ``id`` is the claim id."""

    __tablename__ = "inventory_claims"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_claims_positive_quantity"),
        CheckConstraint(
            "returned_quantity + consumed_quantity <= quantity",
            name="ck_inventory_claims_settlement_bounds",
        ),
        CheckConstraint(
            "state IN ('open', 'completed', 'cancelled')",
            name="ck_inventory_claims_valid_state",
        ),
        CheckConstraint(
            "kind IN ('repair', 'maintenance', 'event_allocation', "
            "'borrow', 'consumption')",
            name="ck_inventory_claims_valid_kind",
        ),
        Index("ix_inventory_claims_asset_state", "asset_id", "state"),
    )

    asset_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("assets.id"), nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    opened_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    reference: Mapped[str | None] = mapped_column(String(200), nullable=True)
    consumed_quantity: Mapped[int] = mapped_column(nullable=False, default=0)
    returned_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<Claim {self.id} {self.kind} asset={self.asset_id} "
            f"qty={self.quantity} state={self.state}>"
        )

    def to_dto(self) -> Claim:
        """Convert ORM model to frozen domain DTO."""
        return Claim(
            claim_id=self.id,
            asset_id=self.asset_id,
            kind=ClaimKind(self.kind),
            quantity=self.quantity,
            state=ClaimState(self.state),
            opened_at=self.opened_at,
            closed_at=self.closed_at,
            reference=self.reference,
            consumed_quantity=self.consumed_quantity,
            returned_quantity=self.returned_quantity,
        )

    @classmethod
    def from_dto(cls, dto: Claim) -> ClaimModel:
        """Create ORM model from domain DTO."""
        model = cls(id=dto.claim_id, asset_id=dto.asset_id, kind=dto.kind.value)
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: Claim) -> None:
        """Copy mutable fields from a DTO onto this row."""
        self.quantity = dto.quantity
        self.state = dto.state.value
        self.opened_at = dto.opened_at
        self.closed_at = dto.closed_at
        self.reference = dto.reference
        self.consumed_quantity = dto.consumed_quantity
        self.returned_quantity = dto.returned_quantity
