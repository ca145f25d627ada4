from datetime import datetime, timezone
from typing import Tuple

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from shopcore.errors import InvalidInput, NotFound
from shopcore.models.shipping import ShippingTerminalCache

_UPSERT_DIALECTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def _require(provider_key: str, country: str) -> None:
    if not provider_key or not country:
        raise InvalidInput("provider_key and country are required")


class TerminalCacheRepository:
    """
    Last known terminal list per (provider, country). Entries never expire;
    they change only through upsert or delete.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_cached(self, provider_key: str, country: str) -> Tuple[str, datetime]:
        _require(provider_key, country)
        row = self.db.execute(
            select(ShippingTerminalCache.payload_json, ShippingTerminalCache.fetched_at).where(
                ShippingTerminalCache.provider_key == provider_key,
                ShippingTerminalCache.country == country,
            )
        ).first()
        if row is None:
            raise NotFound("terminal cache entry not found")
        return row.payload_json, row.fetched_at

    def upsert_cached(self, provider_key: str, country: str, payload_json: str) -> datetime:
        _require(provider_key, country)
        payload_json = payload_json or "[]"
        now = datetime.now(timezone.utc)
        insert = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(ShippingTerminalCache).values(
                provider_key=provider_key,
                country=country,
                payload_json=payload_json,
                fetched_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[ShippingTerminalCache.provider_key, ShippingTerminalCache.country],
                set_={"payload_json": stmt.excluded.payload_json, "fetched_at": now},
            )
            self.db.execute(stmt)
        else:
            self.db.merge(
                ShippingTerminalCache(
                    provider_key=provider_key,
                    country=country,
                    payload_json=payload_json,
                    fetched_at=now,
                )
            )
            self.db.flush()
        return now

    def delete_cached(self, provider_key: str, country: str) -> None:
        _require(provider_key, country)
        res = self.db.execute(
            delete(ShippingTerminalCache).where(
                ShippingTerminalCache.provider_key == provider_key,
                ShippingTerminalCache.country == country,
            )
        )
        if res.rowcount == 0:
            raise NotFound("terminal cache entry not found")
