from __future__ import annotations

from typing import Generator

from fastapi import Depends, Header

from retail_panel.app.core.config import SYNC_SECRET_HEADER, Settings, get_settings
from retail_panel.app.db.session import SessionLocal
from retail_panel.services.sale_ingestion import verify_sync_secret
from retail_panel.services.storefront_sync import CatalogPublisher


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_catalog_publisher(settings: Settings = Depends(get_settings)) -> CatalogPublisher:
    return CatalogPublisher.from_settings(settings)


def require_sync_secret(
    settings: Settings = Depends(get_settings),
    sync_secret: str | None = Header(default=None, alias=SYNC_SECRET_HEADER),
) -> str:
    """Rejette avant toute lecture du corps de la requête."""
    verify_sync_secret(sync_secret, settings.sync_secret)
    return sync_secret
