from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shopcore.errors import (
    Conflict,
    InsufficientStock,
    InvalidInput,
    NotFound,
    ProviderUnavailable,
    ShopError,
    Unavailable,
)
from shopcore.utils.logging import get_logger

log = get_logger(__name__)

# checked in order, so subclasses must come before their bases
STATUS_BY_ERROR = (
    (NotFound, 404),
    (InvalidInput, 400),
    (InsufficientStock, 409),
    (Conflict, 409),
    (ProviderUnavailable, 503),
    (Unavailable, 503),
)


def status_for(exc: BaseException) -> int:
    for kind, code in STATUS_BY_ERROR:
        if isinstance(exc, kind):
            return code
    return 500


async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    code = status_for(exc)
    if code == 500:
        log.error("%s %s failed: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=code, content={"detail": str(exc)})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("%s %s crashed: %s", request.method, request.url.path, type(exc).__name__)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
