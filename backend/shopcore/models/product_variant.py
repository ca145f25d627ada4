from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from shopcore.db import Base


class ProductVariant(Base):
    """Catalog-owned purchasable SKU; the checkout core only reads price and stock."""

    __tablename__ = "product_variants"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_product_variants_stock"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    sku = Column(String(64), unique=True, index=True, nullable=False)
    title = Column(String(256), nullable=False, default="")
    price_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="EUR")
    stock = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self):
        return f"<ProductVariant sku={self.sku} stock={self.stock}>"
