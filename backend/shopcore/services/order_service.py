import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from shopcore.config import settings
from shopcore.errors import InsufficientStock, InvalidInput, NotFound
from shopcore.models.order import STATUS_PENDING_PAYMENT, Order, OrderItem
from shopcore.repositories.order_repo import OrderRepository
from shopcore.repositories.variant_repo import VariantRepository
from shopcore.schemas.cart_schema import CartOut
from shopcore.schemas.order_schema import OrderMetrics, OrderOut
from shopcore.utils.logging import get_logger
from shopcore.utils.transactions import atomic

log = get_logger(__name__)


def generate_order_number(now_ns: Optional[int] = None) -> str:
    """ORD-<UTC date>-<time-derived suffix>; readable, not a strict sequence."""
    now_ns = time.time_ns() if now_ns is None else now_ns
    day = datetime.fromtimestamp(now_ns / 1_000_000_000, tz=timezone.utc)
    return f"ORD-{day:%Y%m%d}-{now_ns % 1_000_000}"


class OrderService:
    def __init__(self, db: Session):
        self.db = db
        self.order_repo = OrderRepository(db)
        self.variant_repo = VariantRepository(db)

    def create_from_cart(self, cart: CartOut, customer_id: Optional[str] = None) -> OrderOut:
        """
        Turn a cart into a pending_payment order in one transaction.

        Stock for every variant is locked and decremented inside the same
        transaction as the order insert; if any variant is short the whole
        thing rolls back with InsufficientStock. The cart itself is left
        untouched.
        """
        if not cart.id:
            raise InvalidInput("invalid cart")
        if not cart.items:
            raise InvalidInput("empty cart")
        currency = cart.totals.currency
        if not currency:
            raise InvalidInput("invalid currency")

        with atomic(self.db):
            self._take_stock(cart)
            subtotal = cart.totals.subtotal_cents
            order = self.order_repo.add_order(
                Order(
                    number=generate_order_number(),
                    status=STATUS_PENDING_PAYMENT,
                    currency=currency,
                    subtotal_cents=subtotal,
                    shipping_cents=0,
                    tax_cents=0,
                    total_cents=subtotal,
                    customer_id=customer_id or None,
                )
            )
            for it in cart.items:
                self.order_repo.add_item(
                    OrderItem(
                        order_id=order.id,
                        product_variant_id=it.product_variant_id,
                        unit_price_cents=it.unit_price_cents,
                        currency=it.currency,
                        quantity=it.quantity,
                    )
                )
            order_id = order.id
            order_number = order.number

        log.info("checkout: created order %s (%s) from cart %s", order_number, order_id, cart.id)
        return self.get_order_by_id(order_id)

    def _take_stock(self, cart: CartOut) -> None:
        wanted: Dict[str, int] = OrderedDict()
        for it in cart.items:
            wanted[it.product_variant_id] = wanted.get(it.product_variant_id, 0) + it.quantity

        locked = {v.id for v in self.variant_repo.lock_for_update(wanted)}
        for variant_id in sorted(wanted):
            if variant_id not in locked:
                raise NotFound(f"variant not found: {variant_id}")
            if not self.variant_repo.decrement_stock(variant_id, wanted[variant_id]):
                raise InsufficientStock(f"insufficient stock for variant {variant_id}")

    def list_orders(
        self,
        limit: int = 0,
        offset: int = 0,
        customer_id: Optional[str] = None,
    ) -> List[OrderOut]:
        if limit <= 0:
            limit = settings.ORDERS_DEFAULT_LIMIT
        limit = min(limit, settings.ORDERS_MAX_LIMIT)
        if offset < 0:
            offset = 0
        orders = self.order_repo.list(limit, offset, customer_id=customer_id)
        return [OrderOut.model_validate(o) for o in orders]

    def get_order_by_id(self, order_id: str, customer_id: Optional[str] = None) -> OrderOut:
        o = self.order_repo.get_with_items(order_id)
        if o is None or (customer_id is not None and o.customer_id != customer_id):
            raise NotFound("order not found")
        return OrderOut.model_validate(o)

    def get_order_metrics(self) -> OrderMetrics:
        total, pending, paid, cancelled = self.order_repo.metrics()
        return OrderMetrics(
            total_orders=int(total or 0),
            pending_payment=int(pending or 0),
            paid=int(paid or 0),
            cancelled=int(cancelled or 0),
        )
