"""SQLAlchemy ORM models and enums.

This module defines the wishlist schema using UUID primary keys and explicit
relationships. A wishlist entry is keyed by (store, customer, product) and
owns at most one conversion record, enforced by unique constraints so that
concurrent adds cannot create duplicates.
"""

import uuid
from datetime import datetime
import enum

from sqlalchemy import CheckConstraint, Column, String, DateTime, Enum, Integer, ForeignKey, JSON, Text, UniqueConstraint
from sqlalchemy.types import Uuid
from sqlalchemy.orm import relationship, declarative_base


# Single Base used by the entire application
Base = declarative_base()


# Enums ---------------------------------------------------------

class StoreStatusEnum(str, enum.Enum):
    installed = "installed"
    uninstalled = "uninstalled"


# Core models ----------------------------------------------------

class Store(Base):
    """Shopify store that installed the wishlist app.

    WHAT: Holds the Admin API access token needed to query order history
    WHY: No wishlist operation is possible without a stored credential, so
         every toggle/check resolves the shop domain to a Store first
    """
    __tablename__ = "stores"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop = Column(String, unique=True, index=True, nullable=False)  # e.g., "mystore.myshopify.com"
    access_token = Column(Text, nullable=False)
    status = Column(
        Enum(StoreStatusEnum, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=StoreStatusEnum.installed,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    wishlist_entries = relationship("WishlistEntry", back_populates="store", cascade="all, delete-orphan")

    def __str__(self):
        return self.shop


class WishlistEntry(Base):
    """A shopper's saved interest in one product at one store.

    Never updated in place: created on first add, deleted on remove.
    """
    __tablename__ = "wishlist_entries"
    __table_args__ = (
        UniqueConstraint("store_id", "customer_id", "product_id", name="uq_wishlist_entry"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    store_id = Column(Uuid(as_uuid=True), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(String, nullable=False)  # Shopify customer id as sent by the storefront
    product_id = Column(String, nullable=False)  # Shopify product id as sent by the storefront
    created_at = Column(DateTime, default=datetime.utcnow)

    store = relationship("Store", back_populates="wishlist_entries")
    conversions = relationship(
        "ConversionRecord",
        back_populates="wishlist",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __str__(self):
        return f"{self.customer_id} -> {self.product_id}"


class ConversionRecord(Base):
    """One-time AI purchase-likelihood score attached to a wishlist entry.

    WHAT: Stores the orders that fed the model and the resulting 0-100 score
    WHY: The score is sticky; it is computed once and returned on every later add/check
    """
    __tablename__ = "conversion_records"
    __table_args__ = (
        UniqueConstraint("wishlist_id", name="uq_conversion_wishlist"),
        CheckConstraint("score >= 0 AND score <= 100", name="ck_conversion_score_range"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wishlist_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("wishlist_entries.id", ondelete="CASCADE"),
        nullable=False,
    )
    order_ids = Column(JSON, nullable=False, default=list)  # ["gid://shopify/Order/1", ...]
    order_history = Column(JSON, nullable=False, default=list)  # human-readable order summaries
    score = Column(Integer, nullable=False)  # 0-100
    created_at = Column(DateTime, default=datetime.utcnow)

    wishlist = relationship("WishlistEntry", back_populates="conversions")

    def __str__(self):
        return f"{self.score}%"
