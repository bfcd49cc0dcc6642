"""
============================================================================
Dynamic Frame Pricing v1.0.0
Database Models - temp_products table
============================================================================

One row per provisioned remote product. Rows are never hard-deleted:
`deleted` flips to true once the remote product is gone, after which the
row is an immutable audit record.

============================================================================
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class TempProduct(Base):
    """Ledger row for a temporary remote product."""

    __tablename__ = "temp_products"

    id = Column(String(32), primary_key=True, default=_new_id)
    shop = Column(String(255), nullable=False)

    # Local (trailing) segment of the remote global ids
    product_id = Column(String(64), nullable=False)
    variant_id = Column(String(64), nullable=False)

    # Denormalized copy of the DimensionSpec used to create the product
    height = Column(Integer, nullable=False)
    width = Column(Integer, nullable=False)
    material = Column(String(32), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    # Stored as naive UTC
    created_at = Column(DateTime, nullable=False)
    delete_at = Column(DateTime, nullable=False)
    deleted = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index(
            "ix_temp_products_lookup",
            "shop", "height", "width", "material", "deleted",
        ),
        Index("ix_temp_products_expiry", "deleted", "delete_at"),
    )

    def __repr__(self):
        return (
            f"<TempProduct(id='{self.id}', shop='{self.shop}', "
            f"product_id='{self.product_id}', deleted={self.deleted})>"
        )


def init_schema(db_engine: Engine) -> None:
    """Create the tables if they do not exist."""
    Base.metadata.create_all(bind=db_engine)
