from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from shopcore.api.deps import get_live_providers
from shopcore.db import get_db
from shopcore.schemas.shipping_schema import (
    MethodIn,
    MethodOut,
    PingOut,
    ProviderIn,
    ProviderOut,
    ProviderUpdateIn,
    TerminalsOut,
    ZoneIn,
    ZoneOut,
)
from shopcore.services.shipping_service import ShippingService
from shopcore.services.terminal_service import TerminalService
from shopcore.shipping.live import LiveProviders

router = APIRouter(prefix="/api/admin/shipping", tags=["admin"])


def _shipping(
    db: Session = Depends(get_db),
    live: Optional[LiveProviders] = Depends(get_live_providers),
) -> ShippingService:
    return ShippingService(db, live)


def _terminals(
    db: Session = Depends(get_db),
    live: Optional[LiveProviders] = Depends(get_live_providers),
) -> TerminalService:
    return TerminalService(db, live)


# providers


@router.get("/providers", response_model=List[ProviderOut])
def list_providers(svc: ShippingService = Depends(_shipping)):
    return svc.list_providers()


@router.post("/providers", response_model=ProviderOut, status_code=201)
def create_provider(payload: ProviderIn, svc: ShippingService = Depends(_shipping)):
    return svc.create_provider(payload)


@router.get("/providers/{key}", response_model=ProviderOut)
def get_provider(key: str, svc: ShippingService = Depends(_shipping)):
    return svc.get_provider(key)


@router.put("/providers/{key}", response_model=ProviderOut)
def update_provider(key: str, payload: ProviderUpdateIn, svc: ShippingService = Depends(_shipping)):
    return svc.update_provider(key, payload)


@router.delete("/providers/{key}", status_code=204)
def delete_provider(key: str, svc: ShippingService = Depends(_shipping)):
    svc.delete_provider(key)
    return Response(status_code=204)


@router.get("/providers/{key}/ping", response_model=PingOut)
def ping_provider(key: str, svc: ShippingService = Depends(_shipping)):
    return svc.ping(key)


# zones


@router.get("/zones", response_model=List[ZoneOut])
def list_zones(svc: ShippingService = Depends(_shipping)):
    return svc.list_zones()


@router.post("/zones", response_model=ZoneOut, status_code=201)
def create_zone(payload: ZoneIn, svc: ShippingService = Depends(_shipping)):
    return svc.create_zone(payload)


@router.get("/zones/{zone_id}", response_model=ZoneOut)
def get_zone(zone_id: str, svc: ShippingService = Depends(_shipping)):
    return svc.get_zone(zone_id)


@router.put("/zones/{zone_id}", response_model=ZoneOut)
def update_zone(zone_id: str, payload: ZoneIn, svc: ShippingService = Depends(_shipping)):
    return svc.update_zone(zone_id, payload)


@router.delete("/zones/{zone_id}", status_code=204)
def delete_zone(zone_id: str, svc: ShippingService = Depends(_shipping)):
    svc.delete_zone(zone_id)
    return Response(status_code=204)


# methods


@router.get("/methods", response_model=List[MethodOut])
def list_methods(zone_id: Optional[str] = Query(None), svc: ShippingService = Depends(_shipping)):
    return svc.list_methods(zone_id)


@router.post("/methods", response_model=MethodOut, status_code=201)
def create_method(payload: MethodIn, svc: ShippingService = Depends(_shipping)):
    return svc.create_method(payload)


@router.get("/methods/{method_id}", response_model=MethodOut)
def get_method(method_id: str, svc: ShippingService = Depends(_shipping)):
    return svc.get_method(method_id)


@router.put("/methods/{method_id}", response_model=MethodOut)
def update_method(method_id: str, payload: MethodIn, svc: ShippingService = Depends(_shipping)):
    return svc.update_method(method_id, payload)


@router.delete("/methods/{method_id}", status_code=204)
def delete_method(method_id: str, svc: ShippingService = Depends(_shipping)):
    svc.delete_method(method_id)
    return Response(status_code=204)


# terminal cache


@router.get("/terminals", response_model=TerminalsOut)
def cached_terminals(
    provider: str = Query(""), country: str = Query(""), svc: TerminalService = Depends(_terminals)
):
    return svc.get_cached_terminals(provider, country)


@router.post("/terminals", response_model=TerminalsOut)
def refresh_terminals(
    provider: str = Query(""), country: str = Query(""), svc: TerminalService = Depends(_terminals)
):
    return svc.refresh_terminals(provider, country)


@router.delete("/terminals", status_code=204)
def evict_terminals(
    provider: str = Query(""), country: str = Query(""), svc: TerminalService = Depends(_terminals)
):
    svc.delete_cached_terminals(provider, country)
    return Response(status_code=204)
