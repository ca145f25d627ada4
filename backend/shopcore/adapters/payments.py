from typing import Dict

from shopcore.config import settings

CHECKOUT_BASE_URL = "https://checkout.stripe.com/test"


class StripeCheckoutStub:
    """
    Stand-in for a hosted checkout session. It only builds a redirect URL for
    the order; nothing is authorised or captured.
    """

    def __init__(self, public_key: str = "", secret_key: str = ""):
        self.public_key = public_key
        self.secret_key = secret_key

    def create_checkout(self, amount_cents: int, currency: str, order_number: str) -> str:
        return f"{CHECKOUT_BASE_URL}/{order_number}"

    def health_check(self) -> Dict[str, bool]:
        return {"configured": bool(self.public_key and self.secret_key)}


def default_payment_adapter() -> StripeCheckoutStub:
    return StripeCheckoutStub(
        public_key=settings.STRIPE_PUBLIC_KEY,
        secret_key=settings.STRIPE_SECRET_KEY,
    )
