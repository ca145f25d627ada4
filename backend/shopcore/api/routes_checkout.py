from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shopcore.adapters.payments import StripeCheckoutStub
from shopcore.api.deps import get_cart_cookie, get_customer_id, get_payment_adapter
from shopcore.db import get_db
from shopcore.errors import InvalidInput, NotFound
from shopcore.schemas.order_schema import CheckoutOut
from shopcore.services.cart_service import CartService
from shopcore.services.order_service import OrderService

router = APIRouter(tags=["checkout"])


@router.post("/api/checkout", response_model=CheckoutOut, summary="Create order from cart")
def checkout(
    db: Session = Depends(get_db),
    customer_id: Optional[str] = Depends(get_customer_id),
    cart_cookie: Optional[str] = Depends(get_cart_cookie),
    payments: StripeCheckoutStub = Depends(get_payment_adapter),
):
    carts = CartService(db)
    if customer_id:
        cart = carts.resolve_customer_cart(customer_id, cart_cookie)
    elif cart_cookie:
        try:
            cart = carts.get_cart(cart_cookie)
        except NotFound:
            raise InvalidInput("cart not found")
    else:
        raise InvalidInput("no cart")

    order = OrderService(db).create_from_cart(cart, customer_id=customer_id)
    url = payments.create_checkout(order.total_cents, order.currency, order.number)
    return CheckoutOut(
        order_id=order.id,
        order_number=order.number,
        status=order.status,
        total_cents=order.total_cents,
        currency=order.currency,
        checkout_url=url,
    )
