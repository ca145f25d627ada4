"""
Shipping price rules.

Each pricing mode has its own rules model. Admin writes decode strictly so a
bad rule set is rejected up front; storefront reads decode leniently and a
bad row prices at 0 instead of failing the request.

Table mode returns the price of the first band that carries one. Bands are
not matched against weight or cart value yet; that rule needs a product
decision before it changes.
"""
import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shopcore.errors import InvalidInput
from shopcore.utils.logging import get_logger

log = get_logger(__name__)

MODE_FIXED = "fixed"
MODE_TABLE = "table"
MODE_PROVIDER = "provider"
PRICING_MODES = (MODE_FIXED, MODE_TABLE, MODE_PROVIDER)


class FixedRules(BaseModel):
    model_config = ConfigDict(extra="allow")
    base_price_cents: Optional[int] = Field(default=None, ge=0)
    free_shipping_order_min_cents: Optional[int] = Field(default=None, ge=0)


class TableBand(BaseModel):
    model_config = ConfigDict(extra="allow")
    min_weight_kg: Optional[float] = None
    max_weight_kg: Optional[float] = None
    price_cents: Optional[int] = Field(default=None, ge=0)


class TableRules(BaseModel):
    model_config = ConfigDict(extra="allow")
    rules: List[TableBand] = Field(default_factory=list)
    free_shipping_order_min_cents: Optional[int] = Field(default=None, ge=0)


class ProviderRules(BaseModel):
    model_config = ConfigDict(extra="allow")


PricingRules = Union[FixedRules, TableRules, ProviderRules]

_RULES_BY_MODE = {
    MODE_FIXED: FixedRules,
    MODE_TABLE: TableRules,
    MODE_PROVIDER: ProviderRules,
}


def normalize_mode(mode: Optional[str]) -> str:
    return (mode or MODE_FIXED).strip().lower() or MODE_FIXED


def decode_pricing_rules(mode: Optional[str], raw: Any, strict: bool = False) -> Optional[PricingRules]:
    """
    Decode stored rules for ``mode``. ``raw`` may be JSON text, bytes, a dict
    or None (empty rules).

    Strict decoding raises ``InvalidInput``. Lenient decoding logs and
    returns None for an unknown mode, empty rules when the JSON cannot be
    read as an object, and otherwise the rules minus any field (or table
    band) that failed validation.
    """
    mode = normalize_mode(mode)
    model = _RULES_BY_MODE.get(mode)
    if model is None:
        if strict:
            raise InvalidInput(f"pricing_mode must be one of {', '.join(PRICING_MODES)}")
        return None

    try:
        data = _load(raw)
        if not isinstance(data, dict):
            raise ValueError("pricing rules must be a JSON object")
    except ValueError as e:
        if strict:
            raise InvalidInput(f"invalid pricing rules for mode '{mode}': {e}")
        log.warning("pricing rules for mode %s could not be decoded, using defaults: %s", mode, e)
        return model()

    try:
        return model.model_validate(data)
    except ValidationError as e:
        if strict:
            raise InvalidInput(f"invalid pricing rules for mode '{mode}': {e}")
        log.warning("pricing rules for mode %s have invalid fields, ignoring them: %s", mode, e)
        return _salvage(model, data, e)


_MAX_SALVAGE_PASSES = 3


def _salvage(model, data: Dict[str, Any], error: ValidationError) -> PricingRules:
    for _ in range(_MAX_SALVAGE_PASSES):
        data = _drop_invalid(data, error)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            error = e
    return model()


def _drop_invalid(data: Dict[str, Any], error: ValidationError) -> Dict[str, Any]:
    """
    Copy of ``data`` without the fields named by ``error``. A bad field inside
    a table band is dropped from that band; a band that is not an object is
    dropped from the list.
    """
    data = dict(data)
    bands = list(data["rules"]) if isinstance(data.get("rules"), list) else None
    bad_bands = set()
    for err in error.errors():
        loc = err.get("loc") or ()
        if not loc:
            continue
        if loc[0] == "rules" and bands is not None and len(loc) >= 2 and isinstance(loc[1], int):
            idx = loc[1]
            if len(loc) >= 3 and isinstance(bands[idx], dict):
                band = dict(bands[idx])
                band.pop(loc[2], None)
                bands[idx] = band
            else:
                bad_bands.add(idx)
        else:
            data.pop(loc[0], None)
    if bands is not None and "rules" in data:
        data["rules"] = [b for i, b in enumerate(bands) if i not in bad_bands]
    return data


def _load(raw: Any) -> Any:
    if raw is None:
        return {}
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        return json.loads(raw)
    return raw


def encode_pricing_rules(rules: Optional[Dict[str, Any]]) -> str:
    return json.dumps(rules or {}, separators=(",", ":"), sort_keys=True)


def _free_shipping_applies(rules: PricingRules, cart_value_cents: int) -> bool:
    threshold = getattr(rules, "free_shipping_order_min_cents", None)
    return threshold is not None and cart_value_cents > 0 and cart_value_cents >= threshold


def price_for_rules(mode: Optional[str], rules: Optional[PricingRules], cart_value_cents: int) -> int:
    mode = normalize_mode(mode)
    if rules is None:
        return 0

    if mode == MODE_FIXED and isinstance(rules, FixedRules):
        if _free_shipping_applies(rules, cart_value_cents):
            return 0
        return rules.base_price_cents or 0

    if mode == MODE_TABLE and isinstance(rules, TableRules):
        if _free_shipping_applies(rules, cart_value_cents):
            return 0
        for band in rules.rules:
            if band.price_cents is not None:
                return band.price_cents
        return 0

    # provider mode is never quoted live here
    return 0


def calculate_price(method: Any, cart_value_cents: int) -> int:
    """
    Price a shipping method (anything with ``pricing_mode`` and
    ``pricing_rules_json``) for a cart worth ``cart_value_cents``.
    Never raises for bad stored rules.
    """
    mode = getattr(method, "pricing_mode", None)
    rules = decode_pricing_rules(mode, getattr(method, "pricing_rules_json", None))
    return price_for_rules(mode, rules, cart_value_cents)
