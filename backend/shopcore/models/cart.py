from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from shopcore.db import Base


class Cart(Base):
    __tablename__ = "carts"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    # NULL for guest carts; one canonical cart per customer
    customer_id = Column(String(64), unique=True, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by=lambda: [CartItem.created_at, CartItem.id],
    )


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_variant_id", name="uq_cart_items_cart_variant"),
        CheckConstraint("quantity > 0", name="ck_cart_items_quantity"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    cart_id = Column(
        String(36), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_variant_id = Column(
        String(36), ForeignKey("product_variants.id"), nullable=False, index=True
    )
    # captured at add time, never refreshed from the catalog
    unit_price_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    cart = relationship("Cart", back_populates="items")
    variant = relationship("ProductVariant", lazy="joined")
