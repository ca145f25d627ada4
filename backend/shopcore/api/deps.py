from typing import Optional

from fastapi import Header, Request

from shopcore.adapters.payments import StripeCheckoutStub, default_payment_adapter
from shopcore.shipping.live import LiveProviders

CART_COOKIE = "cart_id"


def get_live_providers(request: Request) -> Optional[LiveProviders]:
    return getattr(request.app.state, "live_providers", None)


def get_payment_adapter(request: Request) -> StripeCheckoutStub:
    adapter = getattr(request.app.state, "payment_adapter", None)
    return adapter or default_payment_adapter()


def get_customer_id(x_customer_id: Optional[str] = Header(None)) -> Optional[str]:
    # set by the auth layer in front of this service
    value = (x_customer_id or "").strip()
    return value or None


def get_cart_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(CART_COOKIE) or None
