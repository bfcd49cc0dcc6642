"""
============================================================================
Dynamic Frame Pricing v1.0.0
Temporary Product Ledger - Persistence Layer
============================================================================

Reliability Level: L5 Critical
Input Constraints: Validated DimensionSpec, timezone-aware datetimes
Side Effects: Database reads/writes on temp_products

LEDGER CONTRACT:
    find_active(shop, spec, now)  newest undeleted exact match, delete_at > now
    insert(...)                   new row with deleted = false
    find_expired(now, shop=None)  undeleted rows with delete_at <= now
    mark_deleted(ids)             deleted false -> true for exactly these ids

Rows are never hard-deleted and a deleted row is never updated again.
Every store failure surfaces as StoreError (TPL-006).

============================================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, List, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database.models import TempProduct
from services.temp_product_models import (
    DimensionSpec,
    StoreError,
    TempProductRecord,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Time Helpers
# =============================================================================

def to_storage_time(value: datetime) -> datetime:
    """Aware datetime -> naive UTC for storage. Naive input is taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage_time(value: datetime) -> datetime:
    """Naive UTC from storage -> aware UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# Ledger Interface
# =============================================================================

class TempProductLedger(ABC):
    """Record store tracking every provisioned temporary product."""

    @abstractmethod
    def find_active(
        self,
        shop: str,
        spec: DimensionSpec,
        now: datetime,
    ) -> Optional[TempProductRecord]:
        """Newest undeleted record matching shop+spec exactly with delete_at > now."""

    @abstractmethod
    def insert(
        self,
        shop: str,
        product_id: str,
        variant_id: str,
        spec: DimensionSpec,
        price: Decimal,
        created_at: datetime,
        delete_at: datetime,
    ) -> TempProductRecord:
        """Persist a new record with deleted = false."""

    @abstractmethod
    def find_expired(
        self,
        now: datetime,
        shop: Optional[str] = None,
    ) -> List[TempProductRecord]:
        """All undeleted records with delete_at <= now, optionally for one shop."""

    @abstractmethod
    def mark_deleted(self, ids: Iterable[str]) -> int:
        """Flip deleted to true for exactly these ids. Returns rows changed."""


# =============================================================================
# SQLAlchemy Implementation
# =============================================================================

def _to_record(row: TempProduct) -> TempProductRecord:
    return TempProductRecord(
        id=row.id,
        shop=row.shop,
        product_id=row.product_id,
        variant_id=row.variant_id,
        height=row.height,
        width=row.width,
        material=row.material,
        price=Decimal(str(row.price)),
        created_at=from_storage_time(row.created_at),
        delete_at=from_storage_time(row.delete_at),
        deleted=bool(row.deleted),
    )


class SqlTempProductLedger(TempProductLedger):
    """
    TempProductLedger over the temp_products table.

    Each operation runs in its own short transaction; the backing store's
    per-statement atomicity is the only concurrency control.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        if session_factory is None:
            from app.database.session import SessionLocal
            session_factory = SessionLocal
        self._session_factory = session_factory

    def find_active(
        self,
        shop: str,
        spec: DimensionSpec,
        now: datetime,
    ) -> Optional[TempProductRecord]:
        query = (
            select(TempProduct)
            .where(
                TempProduct.shop == shop,
                TempProduct.height == spec.height,
                TempProduct.width == spec.width,
                TempProduct.material == spec.material.value,
                TempProduct.deleted.is_(False),
                TempProduct.delete_at > to_storage_time(now),
            )
            .order_by(TempProduct.created_at.desc())
            .limit(1)
        )

        try:
            with self._session_factory() as session:
                row = session.execute(query).scalars().first()
                return _to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error(
                f"[{StoreError.error_code}] find_active failed | "
                f"shop={shop} | spec={spec.to_dict()} | error={e}"
            )
            raise StoreError(f"Ledger lookup failed: {e}") from e

    def insert(
        self,
        shop: str,
        product_id: str,
        variant_id: str,
        spec: DimensionSpec,
        price: Decimal,
        created_at: datetime,
        delete_at: datetime,
    ) -> TempProductRecord:
        row = TempProduct(
            shop=shop,
            product_id=product_id,
            variant_id=variant_id,
            height=spec.height,
            width=spec.width,
            material=spec.material.value,
            price=price,
            created_at=to_storage_time(created_at),
            delete_at=to_storage_time(delete_at),
            deleted=False,
        )

        try:
            with self._session_factory() as session:
                with session.begin():
                    session.add(row)
                    session.flush()
                    record = _to_record(row)
        except SQLAlchemyError as e:
            logger.error(
                f"[{StoreError.error_code}] insert failed | "
                f"shop={shop} | product_id={product_id} | error={e}"
            )
            raise StoreError(f"Ledger insert failed: {e}") from e

        logger.debug(
            f"[LEDGER] Record inserted | id={record.id} | "
            f"shop={shop} | product_id={product_id} | "
            f"delete_at={record.delete_at.isoformat()}"
        )
        return record

    def find_expired(
        self,
        now: datetime,
        shop: Optional[str] = None,
    ) -> List[TempProductRecord]:
        query = select(TempProduct).where(
            TempProduct.deleted.is_(False),
            TempProduct.delete_at <= to_storage_time(now),
        )
        if shop is not None:
            query = query.where(TempProduct.shop == shop)
        query = query.order_by(TempProduct.delete_at.asc())

        try:
            with self._session_factory() as session:
                return [_to_record(row) for row in session.execute(query).scalars()]
        except SQLAlchemyError as e:
            logger.error(
                f"[{StoreError.error_code}] find_expired failed | "
                f"shop={shop or 'ALL'} | error={e}"
            )
            raise StoreError(f"Ledger expiry query failed: {e}") from e

    def mark_deleted(self, ids: Iterable[str]) -> int:
        id_list = sorted(set(ids))
        if not id_list:
            return 0

        statement = (
            update(TempProduct)
            .where(TempProduct.id.in_(id_list), TempProduct.deleted.is_(False))
            .values(deleted=True)
            .execution_options(synchronize_session=False)
        )

        try:
            with self._session_factory() as session:
                with session.begin():
                    changed = session.execute(statement).rowcount
        except SQLAlchemyError as e:
            logger.error(
                f"[{StoreError.error_code}] mark_deleted failed | "
                f"ids={len(id_list)} | error={e}"
            )
            raise StoreError(f"Ledger update failed: {e}") from e

        logger.debug(f"[LEDGER] Records marked deleted | requested={len(id_list)} | changed={changed}")
        return changed


__all__ = [
    "TempProductLedger",
    "SqlTempProductLedger",
    "to_storage_time",
    "from_storage_time",
]
