"""
SqlAlchemyInventoryStore -- relational persistence adapter.

Responsibility:
    Implements ``InventoryStore`` on the kernel ORM models so the ledger
    and the request service can run against PostgreSQL (production) or
    SQLite (tests, local runs).

Architecture position:
    Kernel > Storage.  May import from db/, models/, domain/, exceptions.

Guarantees:
    - Outside ``transaction()`` every call runs in its own short session
      and commits immediately (single-record atomicity).
    - Inside ``transaction()`` all calls made by the current thread share
      one session; the block commits on normal exit and rolls back on any
      exception.
    - ``load_asset(..., for_update=True)`` issues ``SELECT ... FOR UPDATE``
      so ledger mutations on one asset are also serialized across
      processes on PostgreSQL.
    - ``compare_and_swap_request`` is a single conditional
      ``UPDATE ... WHERE state = :expected``; exactly one concurrent caller
      sees rowcount 1.

Failure modes:
    - SQLAlchemyError subclasses propagate unchanged; the ledger turns them
      into LedgerStorageError.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.db.engine import session_scope
from inventory_kernel.domain.acquisition import AcquisitionRequest, RequestState
from inventory_kernel.domain.claim import Asset, Claim, ClaimState
from inventory_kernel.exceptions import (
    AssetNotFoundError,
    ClaimNotFoundError,
    RequestNotFoundError,
)
from inventory_kernel.models.acquisition_request import AcquisitionRequestModel
from inventory_kernel.models.asset import AssetModel
from inventory_kernel.models.claim import ClaimModel


class SqlAlchemyInventoryStore:
    """``InventoryStore`` backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        self._local = threading.local()

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Bind one session to the current thread for the block."""
        if getattr(self._local, "session", None) is not None:
            yield
            return

        with session_scope(self._session_factory) as session:
            self._local.session = session
            try:
                yield
            finally:
                self._local.session = None

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = getattr(self._local, "session", None)
        if session is not None:
            yield session
            return
        with session_scope(self._session_factory) as session:
            yield session

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    def load_asset(self, asset_id: UUID, *, for_update: bool = False) -> Asset:
        stmt = select(AssetModel).where(AssetModel.id == asset_id)
        if for_update:
            stmt = stmt.with_for_update()
        with self._session() as session:
            model = session.execute(
                stmt.execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if model is None:
                raise AssetNotFoundError(str(asset_id))
            return model.to_dto()

    def save_asset(self, asset: Asset) -> None:
        with self._session() as session:
            model = session.get(AssetModel, asset.asset_id)
            if model is None:
                session.add(AssetModel.from_dto(asset))
            else:
                model.apply_dto(asset)
            session.flush()

    # -------------------------------------------------------------------------
    # Claims
    # -------------------------------------------------------------------------

    def load_claim(self, claim_id: UUID) -> Claim:
        with self._session() as session:
            model = session.get(ClaimModel, claim_id, populate_existing=True)
            if model is None:
                raise ClaimNotFoundError(str(claim_id))
            return model.to_dto()

    def save_claim(self, claim: Claim) -> None:
        with self._session() as session:
            model = session.get(ClaimModel, claim.claim_id)
            if model is None:
                session.add(ClaimModel.from_dto(claim))
            else:
                model.apply_dto(claim)
            session.flush()

    def list_claims(
        self,
        asset_id: UUID,
        state: ClaimState | None = None,
    ) -> list[Claim]:
        stmt = select(ClaimModel).where(ClaimModel.asset_id == asset_id)
        if state is not None:
            stmt = stmt.where(ClaimModel.state == state.value)
        stmt = stmt.order_by(ClaimModel.opened_at)
        with self._session() as session:
            return [m.to_dto() for m in session.execute(stmt).scalars().all()]

    # -------------------------------------------------------------------------
    # Acquisition requests
    # -------------------------------------------------------------------------

    def load_request(self, request_id: UUID) -> AcquisitionRequest:
        with self._session() as session:
            model = session.get(
                AcquisitionRequestModel, request_id, populate_existing=True,
            )
            if model is None:
                raise RequestNotFoundError(str(request_id))
            return model.to_dto()

    def save_request(self, request: AcquisitionRequest) -> None:
        with self._session() as session:
            model = session.get(AcquisitionRequestModel, request.request_id)
            if model is None:
                session.add(AcquisitionRequestModel.from_dto(request))
            else:
                for key, value in AcquisitionRequestModel.mutable_columns(request).items():
                    setattr(model, key, value)
            session.flush()

    def compare_and_swap_request(
        self,
        request: AcquisitionRequest,
        expected_state: RequestState,
    ) -> bool:
        stmt = (
            update(AcquisitionRequestModel)
            .where(
                AcquisitionRequestModel.id == request.request_id,
                AcquisitionRequestModel.state == expected_state.value,
            )
            .values(**AcquisitionRequestModel.mutable_columns(request))
            .execution_options(synchronize_session=False)
        )
        with self._session() as session:
            result = session.execute(stmt)
            if result.rowcount == 1:
                return True
            self._require_request(session, request.request_id)
            return False

    def list_requests(
        self,
        state: RequestState | None = None,
        *,
        due_at: datetime | None = None,
    ) -> list[AcquisitionRequest]:
        stmt = select(AcquisitionRequestModel)
        if state is not None:
            stmt = stmt.where(AcquisitionRequestModel.state == state.value)
        if due_at is not None:
            stmt = stmt.where(AcquisitionRequestModel.deadline <= due_at)
        stmt = stmt.order_by(AcquisitionRequestModel.created_at.desc())
        with self._session() as session:
            return [m.to_dto() for m in session.execute(stmt).scalars().all()]

    def delete_request(
        self,
        request_id: UUID,
        expected_state: RequestState | None = None,
    ) -> bool:
        stmt = delete(AcquisitionRequestModel).where(
            AcquisitionRequestModel.id == request_id,
        )
        if expected_state is not None:
            stmt = stmt.where(AcquisitionRequestModel.state == expected_state.value)
        with self._session() as session:
            result = session.execute(
                stmt.execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return True
            self._require_request(session, request_id)
            return False

    @staticmethod
    def _require_request(session: Session, request_id: UUID) -> None:
        exists = session.execute(
            select(AcquisitionRequestModel.id).where(
                AcquisitionRequestModel.id == request_id,
            )
        ).scalar_one_or_none()
        if exists is None:
            raise RequestNotFoundError(str(request_id))
