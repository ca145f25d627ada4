from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopcore.api.deps import get_live_providers
from shopcore.db import get_db
from shopcore.schemas.shipping_schema import ShippingOptionsOut, TerminalsOut
from shopcore.services.shipping_service import ShippingService
from shopcore.services.terminal_service import TerminalService
from shopcore.shipping.live import LiveProviders
from shopcore.shipping.provider import QuoteRequest, ShippingOption

router = APIRouter(prefix="/api/shipping", tags=["shipping"])


class QuoteIn(QuoteRequest):
    provider: str


class QuoteOut(BaseModel):
    provider: str
    options: List[ShippingOption]


@router.get("/options", response_model=ShippingOptionsOut, summary="Shipping methods for a country")
def shipping_options(
    country: str = Query(""),
    cart_value: int = Query(0),
    db: Session = Depends(get_db),
):
    return ShippingService(db).shipping_options(country, cart_value)


@router.get("/terminals", response_model=TerminalsOut, summary="Pickup terminals")
def terminals(
    provider: str = Query(""),
    country: str = Query(""),
    db: Session = Depends(get_db),
    live: Optional[LiveProviders] = Depends(get_live_providers),
):
    return TerminalService(db, live).get_terminals(provider, country)


@router.post("/quote", response_model=QuoteOut, summary="Live carrier quote")
def quote(
    payload: QuoteIn,
    db: Session = Depends(get_db),
    live: Optional[LiveProviders] = Depends(get_live_providers),
):
    req = QuoteRequest(**payload.model_dump(exclude={"provider"}))
    options = ShippingService(db, live).quote(payload.provider, req)
    return QuoteOut(provider=payload.provider, options=options)
