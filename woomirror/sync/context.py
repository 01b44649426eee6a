"""WooMirror: Sync context.

Everything a synchronizer needs travels in one explicit object; no
synchronizer touches a global session or client.
"""

import logging
from dataclasses import dataclass

from sqlmodel import Session

from woomirror.connectors.woo.client import WooClient
from woomirror.core.logging import get_logger
from woomirror.models.mirror_models import Store


class ConfigurationError(Exception):
    """A run cannot start; raised before any remote or mirror I/O."""


class StoreNotFoundError(ConfigurationError):
    def __init__(self, store_id):
        self.store_id = store_id
        super().__init__(f"Store {store_id} not found")


class MissingCredentialsError(ConfigurationError):
    def __init__(self, store_id, missing: list[str]):
        self.store_id = store_id
        self.missing = missing
        super().__init__(f"Store {store_id} is missing {', '.join(missing)}")


@dataclass
class SyncContext:
    store: Store
    session: Session
    client: WooClient
    logger: logging.Logger

    @property
    def store_id(self) -> int:
        return self.store.id

    def log(self, message: str, **extra) -> None:
        self.logger.info(message, extra={"store_id": self.store.id, **extra})


def load_store(session: Session, store_id) -> Store:
    if store_id in (None, ""):
        raise ConfigurationError("store_id missing in event data")
    store = session.get(Store, store_id)
    if store is None:
        raise StoreNotFoundError(store_id)
    return store


def validate_store(store: Store) -> None:
    missing = [
        name
        for name in ("woo_base_url", "woo_key", "woo_secret")
        if not getattr(store, name)
    ]
    if missing:
        raise MissingCredentialsError(store.id, missing)


def create_sync_context(
    session: Session,
    store: Store,
    client: WooClient | None = None,
    logger: logging.Logger | None = None,
) -> SyncContext:
    """Build the context for one store run. Fails fast on bad configuration."""
    validate_store(store)
    if client is None:
        client = WooClient(
            base_url=store.woo_base_url,
            consumer_key=store.woo_key,
            consumer_secret=store.woo_secret,
        )
    return SyncContext(
        store=store,
        session=session,
        client=client,
        logger=logger or get_logger("sync"),
    )
