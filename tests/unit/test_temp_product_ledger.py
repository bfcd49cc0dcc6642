"""
============================================================================
Unit Tests - SQL Temporary Product Ledger
============================================================================

Python 3.8 Compatible

Runs SqlTempProductLedger against in-memory SQLite:
- find_active exact-match, expiry and newest-first semantics
- find_expired boundary (delete_at <= now) and shop filter
- mark_deleted idempotence
- StoreError mapping (TPL-006)
============================================================================
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.database.models import Base, TempProduct, init_schema
from services.temp_product_ledger import (
    SqlTempProductLedger,
    from_storage_time,
    to_storage_time,
)
from services.temp_product_models import DimensionSpec, Material, StoreError


SHOP = "frames.myshopify.com"
OTHER_SHOP = "posters.myshopify.com"
NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
TTL = timedelta(hours=2)
WOOD_SPEC = DimensionSpec(200, 300, Material.WOOD)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def ledger(db_engine) -> SqlTempProductLedger:
    factory = sessionmaker(bind=db_engine, expire_on_commit=False)
    return SqlTempProductLedger(session_factory=factory)


def _insert(ledger, shop=SHOP, spec=WOOD_SPEC, created_at=NOW, product_id="1001"):
    return ledger.insert(
        shop=shop,
        product_id=product_id,
        variant_id=f"v{product_id}",
        spec=spec,
        price=Decimal("56.00"),
        created_at=created_at,
        delete_at=created_at + TTL,
    )


class TestTimeHelpers:

    def test_round_trip_to_aware_utc(self) -> None:
        stored = to_storage_time(NOW)

        assert stored.tzinfo is None
        assert from_storage_time(stored) == NOW

    def test_other_offsets_converted_to_utc(self) -> None:
        plus_three = timezone(timedelta(hours=3))
        local = datetime(2025, 3, 1, 15, 0, tzinfo=plus_three)

        assert to_storage_time(local) == datetime(2025, 3, 1, 12, 0)


class TestInsert:

    def test_returns_record_with_generated_id(self, ledger) -> None:
        record = _insert(ledger)

        assert len(record.id) == 32
        assert record.shop == SHOP
        assert record.material == "wood"
        assert record.price == Decimal("56.00")
        assert record.created_at == NOW
        assert record.delete_at == NOW + TTL
        assert record.deleted is False

    def test_row_persisted(self, ledger, db_engine) -> None:
        record = _insert(ledger)

        with sessionmaker(bind=db_engine)() as session:
            row = session.get(TempProduct, record.id)

        assert row is not None
        assert row.product_id == "1001"


class TestFindActive:

    def test_exact_match_within_ttl(self, ledger) -> None:
        record = _insert(ledger)

        found = ledger.find_active(SHOP, WOOD_SPEC, NOW + timedelta(minutes=30))

        assert found is not None
        assert found.id == record.id

    def test_expired_at_deadline(self, ledger) -> None:
        _insert(ledger)

        assert ledger.find_active(SHOP, WOOD_SPEC, NOW + TTL) is None

    def test_no_tolerance_on_dimensions(self, ledger) -> None:
        _insert(ledger)

        assert ledger.find_active(SHOP, DimensionSpec(201, 300, Material.WOOD), NOW) is None
        assert ledger.find_active(SHOP, DimensionSpec(200, 300, Material.METAL), NOW) is None

    def test_scoped_by_shop(self, ledger) -> None:
        _insert(ledger)

        assert ledger.find_active(OTHER_SHOP, WOOD_SPEC, NOW) is None

    def test_newest_match_wins(self, ledger) -> None:
        _insert(ledger, product_id="1001")
        newer = _insert(ledger, product_id="1002", created_at=NOW + timedelta(minutes=5))

        found = ledger.find_active(SHOP, WOOD_SPEC, NOW + timedelta(minutes=10))

        assert found.id == newer.id

    def test_deleted_rows_ignored(self, ledger) -> None:
        record = _insert(ledger)
        ledger.mark_deleted([record.id])

        assert ledger.find_active(SHOP, WOOD_SPEC, NOW) is None


class TestFindExpired:

    def test_boundary_is_inclusive(self, ledger) -> None:
        record = _insert(ledger)

        assert ledger.find_expired(NOW + TTL - timedelta(seconds=1)) == []
        assert [r.id for r in ledger.find_expired(NOW + TTL)] == [record.id]

    def test_shop_filter(self, ledger) -> None:
        _insert(ledger, shop=SHOP, product_id="1")
        other = _insert(ledger, shop=OTHER_SHOP, product_id="2")
        later = NOW + TTL + timedelta(minutes=1)

        assert len(ledger.find_expired(later)) == 2
        assert [r.id for r in ledger.find_expired(later, shop=OTHER_SHOP)] == [other.id]

    def test_excludes_deleted(self, ledger) -> None:
        record = _insert(ledger)
        ledger.mark_deleted([record.id])

        assert ledger.find_expired(NOW + TTL * 2) == []


class TestMarkDeleted:

    def test_flips_only_given_ids(self, ledger) -> None:
        first = _insert(ledger, product_id="1")
        second = _insert(ledger, product_id="2")

        assert ledger.mark_deleted([first.id]) == 1

        remaining = ledger.find_expired(NOW + TTL)
        assert [r.id for r in remaining] == [second.id]

    def test_idempotent(self, ledger) -> None:
        record = _insert(ledger)

        assert ledger.mark_deleted([record.id]) == 1
        assert ledger.mark_deleted([record.id]) == 0

    def test_empty_and_unknown_ids(self, ledger) -> None:
        assert ledger.mark_deleted([]) == 0
        assert ledger.mark_deleted(["does-not-exist"]) == 0


class TestStoreErrors:

    def test_missing_table_maps_to_store_error(self, ledger, db_engine) -> None:
        Base.metadata.drop_all(bind=db_engine)

        with pytest.raises(StoreError) as exc_info:
            ledger.find_expired(NOW)

        assert exc_info.value.error_code == "TPL-006"

    def test_insert_failure_maps_to_store_error(self, ledger, db_engine) -> None:
        Base.metadata.drop_all(bind=db_engine)

        with pytest.raises(StoreError, match="insert failed"):
            _insert(ledger)
