from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shopcore import db as shop_db
from shopcore.adapters.payments import StripeCheckoutStub
from shopcore.api.deps import get_live_providers, get_payment_adapter

router = APIRouter()


@router.get("/health", tags=["health"])
def health(
    request: Request,
    live=Depends(get_live_providers),
    payments: StripeCheckoutStub = Depends(get_payment_adapter),
):
    db_ok = False
    bind = getattr(request.app.state, "engine", None) or shop_db.engine
    if bind is not None:
        try:
            with bind.connect() as conn:
                conn.execute(text("SELECT 1"))
                db_ok = True
        except SQLAlchemyError:
            db_ok = False
    providers = live.keys() if live is not None else []
    return {
        "status": "ok" if db_ok else "degraded",
        "db": db_ok,
        "shipping_providers": providers,
        "payment_adapter": payments.health_check(),
    }
