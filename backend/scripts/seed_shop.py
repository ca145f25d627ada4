#!/usr/bin/env python3
"""
Seed a development database with a few product variants, an EU shipping
zone with one fixed and one table-priced method, and the Omniva provider in
sandbox mode (enabled).

Safe to run repeatedly: variants are matched on SKU and the zone/provider
are only created when missing.

Usage:
    python scripts/seed_shop.py
    python scripts/seed_shop.py --reset
"""
import argparse
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.dirname(__file__) + "/.."))

from shopcore.db import SessionLocal, init_db
from shopcore.errors import NotFound
from shopcore.repositories.shipping_repo import ShippingRepository
from shopcore.repositories.variant_repo import VariantRepository
from shopcore.utils.logging import get_logger
from shopcore.utils.transactions import atomic

log = get_logger("seed")

VARIANTS = [
    {"sku": "TEA-100", "title": "Tea 100g", "price_cents": 300, "stock": 50},
    {"sku": "COF-200", "title": "Coffee 200g", "price_cents": 600, "stock": 20},
    {"sku": "MUG-01", "title": "Enamel Mug", "price_cents": 1250, "stock": 5},
    {"sku": "LAST-1", "title": "Last One Standing", "price_cents": 999, "stock": 1},
]

EU_ZONE = {"name": "Baltics", "countries": ["LT", "LV", "EE"]}

METHODS = [
    {
        "service_code": "parcel-locker",
        "title": "Omniva parcel locker",
        "sort_order": 1,
        "pricing_mode": "fixed",
        "pricing_rules": {"base_price_cents": 250, "free_shipping_order_min_cents": 5000},
    },
    {
        "service_code": "courier",
        "title": "Omniva courier",
        "sort_order": 2,
        "pricing_mode": "table",
        "pricing_rules": {
            "rules": [
                {"min_weight_kg": 0, "max_weight_kg": 5, "price_cents": 590},
                {"min_weight_kg": 5, "max_weight_kg": 30, "price_cents": 990},
            ]
        },
    },
]


def seed(reset: bool = False):
    init_db(reset=reset)
    db = SessionLocal()
    try:
        with atomic(db):
            variants = VariantRepository(db)
            for v in VARIANTS:
                variants.create_or_update(currency="EUR", **v)

            shipping = ShippingRepository(db)
            try:
                zone = shipping.get_zone_by_country(EU_ZONE["countries"][0])
            except NotFound:
                zone = shipping.create_zone(EU_ZONE["name"], EU_ZONE["countries"])
                for m in METHODS:
                    shipping.create_method({"zone_id": zone.id, "provider_key": "omniva", **m})

            try:
                shipping.get_provider("omniva")
            except NotFound:
                shipping.create_provider("omniva", "Omniva", mode="sandbox", config={"timeout_seconds": 10})
                shipping.update_provider("omniva", enabled=True, mode="sandbox", config={"timeout_seconds": 10})
        log.info("seeded %d variants, zone and provider", len(VARIANTS))
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()
    seed(reset=args.reset)
