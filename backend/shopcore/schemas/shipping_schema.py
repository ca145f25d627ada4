from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from shopcore.shipping.provider import Terminal


class ZoneIn(BaseModel):
    name: str = ""
    countries: List[str] = Field(default_factory=list)
    enabled: bool = True


class ZoneOut(BaseModel):
    id: str
    name: str
    countries: List[str]
    enabled: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MethodIn(BaseModel):
    zone_id: str = ""
    provider_key: str = ""
    service_code: str = ""
    title: str = ""
    enabled: bool = True
    sort_order: int = 0
    pricing_mode: str = "fixed"
    pricing_rules: Optional[Dict[str, Any]] = None


class MethodOut(BaseModel):
    id: str
    zone_id: str
    provider_key: str
    service_code: str
    title: str
    enabled: bool
    sort_order: int
    pricing_mode: str
    pricing_rules: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProviderIn(BaseModel):
    key: str = ""
    name: str = ""
    mode: str = "sandbox"
    config: Dict[str, Any] = Field(default_factory=dict)


class ProviderUpdateIn(BaseModel):
    enabled: bool = False
    mode: str = "sandbox"
    config: Dict[str, Any] = Field(default_factory=dict)


class ProviderOut(BaseModel):
    id: str
    key: str
    name: str
    enabled: bool
    mode: str
    config: Dict[str, Any] = Field(default_factory=dict)
    live: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MethodOption(BaseModel):
    id: str
    zone_id: str
    provider_key: str
    service_code: str
    title: str
    enabled: bool
    sort_order: int
    pricing_mode: str
    price: int
    currency: str


class ShippingOptionsOut(BaseModel):
    zone: Optional[ZoneOut] = None
    methods: List[MethodOption] = Field(default_factory=list)


class TerminalsOut(BaseModel):
    provider: str
    country: str
    terminals: List[Terminal] = Field(default_factory=list)
    fetched_at: Optional[datetime] = None


class PingOut(BaseModel):
    status: str
    message: str
