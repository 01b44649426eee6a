"""WooMirror: Store Registry."""

from typing import List, Optional

from sqlmodel import Session, select

from woomirror.models.mirror_models import Store
from woomirror.sync.context import ConfigurationError


def seed_store(
    session: Session,
    name: str,
    woo_base_url: str,
    woo_key: str,
    woo_secret: str,
    webhook_secret: Optional[str] = None,
) -> Store:
    """Create or update the store registered under ``woo_base_url``."""
    supplied = {
        "name": name,
        "woo_base_url": woo_base_url,
        "woo_key": woo_key,
        "woo_secret": woo_secret,
    }
    missing = [key for key, value in supplied.items() if not value]
    if missing:
        raise ConfigurationError(f"Missing required arguments: {', '.join(missing)}")

    base_url = woo_base_url.rstrip("/")
    store = session.exec(select(Store).where(Store.woo_base_url == base_url)).first()
    if store is None:
        store = Store(woo_base_url=base_url)
    store.name = name
    store.woo_key = woo_key
    store.woo_secret = woo_secret
    store.webhook_secret = webhook_secret or None
    session.add(store)
    session.commit()
    session.refresh(store)
    return store


def list_store_ids(session: Session) -> List[int]:
    return list(session.exec(select(Store.id).order_by(Store.id)).all())
