from typing import Optional

from sqlalchemy.orm import Session

from shopcore.errors import Conflict, InvalidInput, NotFound
from shopcore.models.cart import Cart
from shopcore.repositories.cart_repo import CartRepository
from shopcore.repositories.variant_repo import VariantRepository
from shopcore.schemas.cart_schema import CartItemOut, CartOut, Totals
from shopcore.utils.locks import keyed_lock
from shopcore.utils.transactions import atomic


class CartService:
    def __init__(self, db: Session):
        self.db = db
        self.cart_repo = CartRepository(db)
        self.variant_repo = VariantRepository(db)

    def create_cart(self) -> CartOut:
        with atomic(self.db):
            c = self.cart_repo.create()
        return self._to_out(c)

    def get_cart(self, cart_id: str) -> CartOut:
        c = self.cart_repo.get(cart_id)
        if c is None:
            raise NotFound("cart not found")
        return self._to_out(c)

    def get_or_create_cart(self, cart_id: Optional[str] = None) -> CartOut:
        if cart_id and self.cart_repo.get(cart_id) is not None:
            return self.get_cart(cart_id)
        return self.create_cart()

    def add_item(self, cart_id: str, variant_id: str, quantity: int) -> CartOut:
        if quantity <= 0:
            raise InvalidInput("quantity must be > 0")
        with atomic(self.db):
            if self.cart_repo.get(cart_id) is None:
                raise NotFound("cart not found")
            price = self.variant_repo.get_price(variant_id)
            if price is None:
                raise NotFound("variant not found")
            price_cents, currency = price
            self.cart_repo.upsert_item(cart_id, variant_id, quantity, price_cents, currency)
            self.cart_repo.touch(cart_id)
        return self.get_cart(cart_id)

    def update_item_quantity(self, cart_id: str, item_id: str, quantity: int) -> CartOut:
        if quantity <= 0:
            raise InvalidInput("quantity must be > 0")
        with atomic(self.db):
            if not self.cart_repo.set_item_quantity(cart_id, item_id, quantity):
                raise NotFound("cart item not found")
            self.cart_repo.touch(cart_id)
        return self.get_cart(cart_id)

    def remove_item(self, cart_id: str, item_id: str) -> CartOut:
        with atomic(self.db):
            if not self.cart_repo.delete_item(cart_id, item_id):
                raise NotFound("cart item not found")
            self.cart_repo.touch(cart_id)
        return self.get_cart(cart_id)

    def resolve_customer_cart(self, customer_id: str, guest_cart_id: Optional[str] = None) -> CartOut:
        """
        Return the customer's canonical cart, creating it if needed, and move
        a guest cart's items into it. The guest cart is emptied in the same
        transaction, so calling this again with the same guest id is a no-op.
        """
        if not customer_id:
            raise InvalidInput("customer id required")

        customer_cart_id = self._ensure_customer_cart(customer_id)
        if guest_cart_id and guest_cart_id != customer_cart_id:
            with keyed_lock("cart_merge", guest_cart_id):
                with atomic(self.db):
                    self._merge_guest_cart(customer_cart_id, guest_cart_id)
        return self.get_cart(customer_cart_id)

    def _ensure_customer_cart(self, customer_id: str) -> str:
        existing = self.cart_repo.get_by_customer(customer_id)
        if existing is not None:
            return existing.id
        try:
            with atomic(self.db):
                cart_id = self.cart_repo.create(customer_id=customer_id).id
            return cart_id
        except Conflict:
            # a concurrent request created the customer's cart first
            pass
        winner = self.cart_repo.get_by_customer(customer_id)
        if winner is None:
            raise NotFound("customer cart not found")
        return winner.id

    def _merge_guest_cart(self, customer_cart_id: str, guest_cart_id: str) -> None:
        guest = self.cart_repo.lock_guest_cart(guest_cart_id)
        if guest is None:
            # unknown id or another customer's cart: nothing to merge
            return
        items = self.cart_repo.list_items(guest_cart_id)
        if not items:
            return
        for it in items:
            self.cart_repo.upsert_item(
                customer_cart_id,
                it.product_variant_id,
                it.quantity,
                it.unit_price_cents,
                it.currency,
            )
        self.cart_repo.clear_items(guest_cart_id)
        self.cart_repo.touch(customer_cart_id)
        self.cart_repo.touch(guest_cart_id)

    def _to_out(self, c: Cart) -> CartOut:
        items = self.cart_repo.list_items(c.id)
        subtotal = 0
        item_count = 0
        currency = ""
        out_items = []
        for it in items:
            out_items.append(
                CartItemOut(
                    id=it.id,
                    cart_id=it.cart_id,
                    product_variant_id=it.product_variant_id,
                    unit_price_cents=it.unit_price_cents,
                    currency=it.currency,
                    quantity=it.quantity,
                    product_title=it.variant.title if it.variant is not None else "",
                    created_at=it.created_at,
                    updated_at=it.updated_at,
                )
            )
            subtotal += it.unit_price_cents * it.quantity
            item_count += it.quantity
            if not currency:
                currency = it.currency
        return CartOut(
            id=c.id,
            customer_id=c.customer_id,
            created_at=c.created_at,
            updated_at=c.updated_at,
            items=out_items,
            totals=Totals(subtotal_cents=subtotal, currency=currency, item_count=item_count),
        )
