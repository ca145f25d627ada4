from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shopcore import db as shop_db
from shopcore.adapters.payments import default_payment_adapter
from shopcore.api.errors import install_error_handlers
from shopcore.api.health import router as health_router
from shopcore.api.routes_admin_shipping import router as admin_shipping_router
from shopcore.api.routes_cart import router as cart_router
from shopcore.api.routes_checkout import router as checkout_router
from shopcore.api.routes_orders import admin_router as admin_orders_router
from shopcore.api.routes_orders import router as orders_router
from shopcore.api.routes_shipping import router as shipping_router
from shopcore.config import settings
from shopcore.shipping.live import LiveProviders
from shopcore.shipping.registry import build_default_registry
from shopcore.utils.logging import get_logger

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    registry = build_default_registry()
    live = LiveProviders(registry)
    app.state.provider_registry = registry
    app.state.live_providers = live
    app.state.payment_adapter = default_payment_adapter()

    if shop_db.engine is None:
        log.warning("DATABASE_URL is empty; running without a database")
    else:
        shop_db.init_db()
        db = shop_db.SessionLocal()
        try:
            keys = live.load(db)
            log.info("shipping providers live: %s", ", ".join(keys) or "none")
        finally:
            db.close()
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="shopcore - checkout and shipping", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.FRONTEND_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    app.include_router(health_router, prefix="/api", tags=["health"])
    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(orders_router)
    app.include_router(admin_orders_router)
    app.include_router(shipping_router)
    app.include_router(admin_shipping_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("shopcore.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
