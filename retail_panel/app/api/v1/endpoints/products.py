from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from retail_panel.app.api.deps import get_catalog_publisher, get_db
from retail_panel.app.db.models.core_types import ProductStatus
from retail_panel.app.schemas.product import ProductCreate, ProductUpdate, product_to_dict
from retail_panel.services import catalog
from retail_panel.services.storefront_sync import CatalogPublisher

router = APIRouter(prefix="/products")


@router.get("")
def list_products(
    type: str | None = None,
    status: ProductStatus | None = None,
    db: Session = Depends(get_db),
):
    rows = catalog.list_products(db, product_type=type, status=status)
    return [product_to_dict(p) for p in rows]


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    return product_to_dict(catalog.get_product(db, product_id))


@router.post("", status_code=201)
def create_product(
    payload: ProductCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: CatalogPublisher = Depends(get_catalog_publisher),
):
    p = catalog.create_product(db, payload)
    # push boutiques après la réponse : un échec n'annule pas la création
    background_tasks.add_task(publisher.publish, publisher.plan(p))
    return product_to_dict(p)


@router.put("/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: CatalogPublisher = Depends(get_catalog_publisher),
):
    p = catalog.update_product(db, product_id, payload)
    background_tasks.add_task(publisher.publish, publisher.plan(p))
    return product_to_dict(p)


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    catalog.delete_product(db, product_id)
    return {"ok": True}
