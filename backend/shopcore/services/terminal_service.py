from typing import List, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopcore.errors import InvalidInput, NotFound, ProviderUnavailable, ShopError
from shopcore.repositories.terminal_repo import TerminalCacheRepository
from shopcore.schemas.shipping_schema import TerminalsOut
from shopcore.shipping.live import LiveProviders
from shopcore.shipping.provider import ProviderError, Terminal
from shopcore.utils.logging import get_logger
from shopcore.utils.transactions import atomic

log = get_logger(__name__)

_terminal_list = TypeAdapter(List[Terminal])


def _args(provider_key: str, country: str):
    provider_key = (provider_key or "").strip()
    country = (country or "").strip().upper()
    if not provider_key or not country:
        raise InvalidInput("provider and country are required")
    return provider_key, country


def encode_terminals(terminals: List[Terminal]) -> str:
    return _terminal_list.dump_json(terminals).decode("utf-8")


def decode_terminals(payload: str) -> List[Terminal]:
    return _terminal_list.validate_json(payload)


class TerminalService:
    """
    Cache-aside terminal lookup. A cached list is served without touching
    the carrier; a miss goes to the live provider and stores the answer.
    Entries only change on refresh or delete.
    """

    def __init__(self, db: Session, live: Optional[LiveProviders] = None):
        self.db = db
        self.repo = TerminalCacheRepository(db)
        self.live = live

    def get_terminals(self, provider_key: str, country: str) -> TerminalsOut:
        provider_key, country = _args(provider_key, country)
        try:
            payload, fetched_at = self.repo.get_cached(provider_key, country)
        except NotFound:
            pass
        else:
            try:
                terminals = decode_terminals(payload)
                return TerminalsOut(
                    provider=provider_key, country=country, terminals=terminals, fetched_at=fetched_at
                )
            except ValidationError as e:
                log.warning("terminals: cached payload for %s/%s unreadable, refetching: %s", provider_key, country, e)

        terminals = self._fetch(provider_key, country)
        fetched_at = None
        try:
            with atomic(self.db):
                fetched_at = self.repo.upsert_cached(provider_key, country, encode_terminals(terminals))
        except (SQLAlchemyError, ShopError) as e:
            log.warning("terminals: could not cache %s/%s: %s", provider_key, country, e)
        return TerminalsOut(provider=provider_key, country=country, terminals=terminals, fetched_at=fetched_at)

    def refresh_terminals(self, provider_key: str, country: str) -> TerminalsOut:
        provider_key, country = _args(provider_key, country)
        terminals = self._fetch(provider_key, country)
        with atomic(self.db):
            fetched_at = self.repo.upsert_cached(provider_key, country, encode_terminals(terminals))
        log.info("terminals: refreshed %s/%s (%d)", provider_key, country, len(terminals))
        return TerminalsOut(provider=provider_key, country=country, terminals=terminals, fetched_at=fetched_at)

    def get_cached_terminals(self, provider_key: str, country: str) -> TerminalsOut:
        provider_key, country = _args(provider_key, country)
        payload, fetched_at = self.repo.get_cached(provider_key, country)
        try:
            terminals = decode_terminals(payload)
        except ValidationError:
            terminals = []
        return TerminalsOut(provider=provider_key, country=country, terminals=terminals, fetched_at=fetched_at)

    def delete_cached_terminals(self, provider_key: str, country: str) -> None:
        provider_key, country = _args(provider_key, country)
        with atomic(self.db):
            self.repo.delete_cached(provider_key, country)

    def _fetch(self, provider_key: str, country: str) -> List[Terminal]:
        if self.live is None:
            raise ProviderUnavailable("provider not found or not enabled")
        provider = self.live.require(provider_key)
        try:
            return provider.list_terminals(country)
        except ProviderError as e:
            log.warning("terminals: provider '%s' failed for %s: %s", provider_key, country, e)
            raise ProviderUnavailable(f"provider '{provider_key}' unavailable: {e}") from e
