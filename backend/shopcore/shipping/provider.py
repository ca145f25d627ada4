from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from shopcore.errors import ShopError


class ProviderError(ShopError):
    """A live carrier call failed."""
    pass


class Terminal(BaseModel):
    id: str
    name: str
    country: str
    city: str = ""
    address: str = ""
    lat: float = 0.0
    lon: float = 0.0
    hours: str = ""


class Dimensions(BaseModel):
    length: float = 0.0
    width: float = 0.0
    height: float = 0.0


class QuoteRequest(BaseModel):
    weight: float = 0.0
    country: str = ""
    zip_code: str = ""
    dimensions: Optional[Dimensions] = None


class ShippingOption(BaseModel):
    service_code: str
    service_name: str
    price: int
    currency: str
    estimate: str = ""
    meta: Dict[str, Any] = Field(default_factory=dict)


class Provider(ABC):
    """A live carrier integration built from stored provider config."""

    @abstractmethod
    def list_terminals(self, country: str) -> List[Terminal]:
        ...

    @abstractmethod
    def quote(self, req: QuoteRequest) -> List[ShippingOption]:
        ...


ProviderFactory = Callable[[Dict[str, Any]], Provider]
