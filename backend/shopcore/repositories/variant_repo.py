from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from shopcore.models.product_variant import ProductVariant


class VariantRepository:
    """Price and stock lookups against the catalog's variant table."""

    def __init__(self, db: Session):
        self.db = db

    def get_price(self, variant_id: str) -> Optional[Tuple[int, str]]:
        row = self.db.execute(
            select(ProductVariant.price_cents, ProductVariant.currency).where(
                ProductVariant.id == variant_id
            )
        ).first()
        if row is None:
            return None
        return row.price_cents, row.currency

    def get_stock(self, variant_id: str) -> Optional[int]:
        return self.db.execute(
            select(ProductVariant.stock).where(ProductVariant.id == variant_id)
        ).scalar_one_or_none()

    def lock_for_update(self, variant_ids: Iterable[str]) -> List[ProductVariant]:
        """
        Lock the given variant rows for the current transaction, in id order
        so concurrent checkouts over overlapping carts cannot deadlock.
        Dialects without row locks (SQLite) ignore FOR UPDATE.
        """
        ids = sorted(set(variant_ids))
        if not ids:
            return []
        return list(
            self.db.execute(
                select(ProductVariant)
                .where(ProductVariant.id.in_(ids))
                .order_by(ProductVariant.id)
                .with_for_update()
            ).scalars()
        )

    def decrement_stock(self, variant_id: str, quantity: int) -> bool:
        """Atomically take ``quantity`` units; False if that would go negative."""
        res = self.db.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant_id, ProductVariant.stock >= quantity)
            .values(stock=ProductVariant.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    def create_or_update(
        self,
        sku: str,
        title: str,
        price_cents: int,
        currency: str = "EUR",
        stock: int = 0,
    ) -> ProductVariant:
        v = self.db.execute(
            select(ProductVariant).where(ProductVariant.sku == sku)
        ).scalar_one_or_none()
        if v:
            v.title = title
            v.price_cents = price_cents
            v.currency = currency
            v.stock = stock
        else:
            v = ProductVariant(
                sku=sku, title=title, price_cents=price_cents, currency=currency, stock=stock
            )
            self.db.add(v)
        self.db.flush()
        return v
