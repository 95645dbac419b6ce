from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Organization, Store


class StoreError(Exception):
    """Raised when store operations fail."""
    pass


def create_organization(name: str, code: str) -> Organization:
    if not name or not code:
        raise StoreError("Organization name and code are required")
    if db.session.query(Organization).filter_by(code=code).first():
        raise StoreError(f"Organization code '{code}' already exists")

    org = Organization(name=name, code=code, is_active=True)
    db.session.add(org)
    db.session.commit()
    return org


def create_store(org_id: int, name: str, *, code: str | None = None, timezone: str | None = None) -> Store:
    if not name:
        raise StoreError("Store name is required")
    if not db.session.query(Organization).filter_by(id=org_id).first():
        raise StoreError("Organization not found")

    store = Store(
        org_id=org_id,
        name=name,
        code=code,
        timezone=timezone or current_app.config.get("DEFAULT_STORE_TIMEZONE", "America/New_York"),
    )
    db.session.add(store)
    db.session.commit()
    return store


def get_store_for_org(store_id: int, org_id: int) -> Store | None:
    """
    The store, only if it belongs to org_id.

    Missing stores and foreign stores both return None so callers cannot
    tell them apart.
    """
    return db.session.query(Store).filter_by(id=store_id, org_id=org_id).first()


def store_timezone(store: Store) -> str:
    return store.timezone or current_app.config.get("DEFAULT_STORE_TIMEZONE", "America/New_York")
