from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from retail_panel.app.api.deps import get_db, require_sync_secret
from retail_panel.app.core.config import Settings, get_settings
from retail_panel.app.schemas.sale import sale_to_dict
from retail_panel.app.schemas.sync import StorefrontSale
from retail_panel.services.sale_ingestion import ingest_storefront_sale

router = APIRouter(prefix="/sync")


@router.post("/sales", status_code=201)
def receive_storefront_sale(
    payload: StorefrontSale,
    response: Response,
    secret: str = Depends(require_sync_secret),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    result = ingest_storefront_sale(db, payload, secret=secret, expected_secret=settings.sync_secret)
    if result.duplicate:
        response.status_code = 200

    body = sale_to_dict(result.sale)
    body["skipped_skus"] = result.skipped_skus
    return body
