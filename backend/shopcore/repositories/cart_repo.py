from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopcore.models.cart import Cart, CartItem

_UPSERT_DIALECTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CartRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, customer_id: Optional[str] = None) -> Cart:
        c = Cart(customer_id=customer_id)
        self.db.add(c)
        self.db.flush()
        return c

    def get(self, cart_id: str) -> Optional[Cart]:
        if not cart_id:
            return None
        return self.db.get(Cart, cart_id)

    def get_by_customer(self, customer_id: str) -> Optional[Cart]:
        return self.db.execute(
            select(Cart).where(Cart.customer_id == customer_id)
        ).scalar_one_or_none()

    def list_items(self, cart_id: str) -> List[CartItem]:
        return list(
            self.db.execute(
                select(CartItem)
                .where(CartItem.cart_id == cart_id)
                .order_by(CartItem.created_at, CartItem.id)
            ).scalars().unique()
        )

    def upsert_item(
        self,
        cart_id: str,
        variant_id: str,
        quantity: int,
        unit_price_cents: int,
        currency: str,
    ) -> None:
        """
        Insert a (cart, variant) row or add ``quantity`` to the existing one.
        The captured price of an existing row is left alone.
        """
        now = _now()
        insert = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(CartItem).values(
                id=str(uuid4()),
                cart_id=cart_id,
                product_variant_id=variant_id,
                unit_price_cents=unit_price_cents,
                currency=currency,
                quantity=quantity,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[CartItem.cart_id, CartItem.product_variant_id],
                set_={
                    "quantity": CartItem.quantity + stmt.excluded.quantity,
                    "updated_at": now,
                },
            )
            self.db.execute(stmt)
            return

        # other dialects: update first, insert on miss, retry the update if a
        # concurrent insert won the unique constraint
        if self._increment(cart_id, variant_id, quantity, now):
            return
        try:
            with self.db.begin_nested():
                self.db.add(
                    CartItem(
                        cart_id=cart_id,
                        product_variant_id=variant_id,
                        unit_price_cents=unit_price_cents,
                        currency=currency,
                        quantity=quantity,
                    )
                )
        except IntegrityError:
            self._increment(cart_id, variant_id, quantity, now)

    def _increment(self, cart_id: str, variant_id: str, quantity: int, now: datetime) -> bool:
        res = self.db.execute(
            update(CartItem)
            .where(CartItem.cart_id == cart_id, CartItem.product_variant_id == variant_id)
            .values(quantity=CartItem.quantity + quantity, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount > 0

    def set_item_quantity(self, cart_id: str, item_id: str, quantity: int) -> bool:
        res = self.db.execute(
            update(CartItem)
            .where(CartItem.id == item_id, CartItem.cart_id == cart_id)
            .values(quantity=quantity, updated_at=_now())
            .execution_options(synchronize_session=False)
        )
        return res.rowcount > 0

    def delete_item(self, cart_id: str, item_id: str) -> bool:
        res = self.db.execute(
            delete(CartItem)
            .where(CartItem.id == item_id, CartItem.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount > 0

    def lock_guest_cart(self, cart_id: str) -> Optional[Cart]:
        """The cart row, locked, only if it is a guest cart (no customer)."""
        return self.db.execute(
            select(Cart)
            .where(Cart.id == cart_id, Cart.customer_id.is_(None))
            .with_for_update()
        ).scalar_one_or_none()

    def clear_items(self, cart_id: str) -> int:
        res = self.db.execute(
            delete(CartItem)
            .where(CartItem.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def touch(self, cart_id: str) -> None:
        self.db.execute(
            update(Cart)
            .where(Cart.id == cart_id)
            .values(updated_at=_now())
            .execution_options(synchronize_session=False)
        )
