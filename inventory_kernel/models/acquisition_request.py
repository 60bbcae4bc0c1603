"""
Module: inventory_kernel.models.acquisition_request
Responsibility: ORM persistence for acquisition requests.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - DB check constraint limits state values; the service enforces the
      transition table and the pending -> terminal compare-and-swap.
    - auto_declined can only be true on a declined (or archived) request.
    - Expiry index (state, deadline) backs the scheduler's due-request scan.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime
from inventory_kernel.domain.acquisition import AcquisitionRequest, RequestState


class AcquisitionRequestModel(Base):
    """Persistent acquisition request.  ``id`` is the request id."""

    __tablename__ = "acquisition_requests"

    __table_args__ = (
        CheckConstraint(
            "state IN ('pending', 'approved', 'declined', 'archived')",
            name="ck_acquisition_requests_valid_state",
        ),
        CheckConstraint("quantity > 0", name="ck_acquisition_requests_positive_quantity"),
        CheckConstraint(
            "auto_declined = false OR state IN ('declined', 'archived')",
            name="ck_acquisition_requests_auto_declined_state",
        ),
        Index("ix_acquisition_requests_expiry", "state", "deadline"),
    )

    asset_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    requested_by: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    auto_declined: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    deadline: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    archived_from: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AcquisitionRequest {self.id} {self.asset_name} "
            f"x{self.quantity} state={self.state}>"
        )

    def to_dto(self) -> AcquisitionRequest:
        """Convert ORM model to frozen domain DTO."""
        return AcquisitionRequest(
            request_id=self.id,
            asset_name=self.asset_name,
            quantity=self.quantity,
            requested_by=self.requested_by,
            created_at=self.created_at,
            deadline=self.deadline,
            state=RequestState(self.state),
            auto_declined=self.auto_declined,
            resolved_at=self.resolved_at,
            archived_at=self.archived_at,
            archived_from=(
                RequestState(self.archived_from) if self.archived_from else None
            ),
        )

    @classmethod
    def from_dto(cls, dto: AcquisitionRequest) -> AcquisitionRequestModel:
        """Create ORM model from domain DTO."""
        return cls(id=dto.request_id, **cls.mutable_columns(dto))

    @staticmethod
    def mutable_columns(dto: AcquisitionRequest) -> dict:
        """Column values for INSERT or for a conditional UPDATE."""
        return {
            "asset_name": dto.asset_name,
            "quantity": dto.quantity,
            "requested_by": dto.requested_by,
            "state": dto.state.value,
            "auto_declined": dto.auto_declined,
            "created_at": dto.created_at,
            "deadline": dto.deadline,
            "resolved_at": dto.resolved_at,
            "archived_at": dto.archived_at,
            "archived_from": dto.archived_from.value if dto.archived_from else None,
        }
