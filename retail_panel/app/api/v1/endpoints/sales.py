from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from retail_panel.app.api.deps import get_db
from retail_panel.app.schemas.sale import SaleCreate, SaleUpdate, sale_to_dict
from retail_panel.services import sales

router = APIRouter(prefix="/sales")


@router.post("", status_code=201)
def create_sale(payload: SaleCreate, db: Session = Depends(get_db)):
    sale = sales.create_sale(
        db,
        lines=payload.lines,
        payment_method=payload.payment_method,
        channel=payload.channel,
        customer=payload.customer.model_dump(exclude_none=True) if payload.customer else None,
        created_by=payload.created_by,
        occurred_at=payload.date,
    )
    return sale_to_dict(sale)


@router.get("")
def list_sales(
    start_date: date | None = None,
    end_date: date | None = None,
    payment_method: str | None = None,
    channel: str | None = None,
    product_id: int | None = None,
    db: Session = Depends(get_db),
):
    rows = sales.list_sales(
        db,
        start_date=start_date,
        end_date=end_date,
        payment_method=payment_method,
        channel=channel,
        product_id=product_id,
    )
    return [sale_to_dict(s) for s in rows]


# déclaré avant /{sale_id}
@router.get("/by-product")
def sales_by_product(
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    return sales.sales_by_product(db, start_date=start_date, end_date=end_date)


@router.get("/{sale_id}")
def get_sale(sale_id: int, db: Session = Depends(get_db)):
    return sale_to_dict(sales.get_sale(db, sale_id))


@router.put("/{sale_id}")
def update_sale(sale_id: int, payload: SaleUpdate, db: Session = Depends(get_db)):
    sale = sales.update_sale(
        db,
        sale_id,
        lines=payload.lines,
        payment_method=payload.payment_method,
        channel=payload.channel,
        customer=payload.customer.model_dump(exclude_none=True) if payload.customer else None,
    )
    return sale_to_dict(sale)


@router.delete("/{sale_id}")
def void_sale(sale_id: int, db: Session = Depends(get_db)):
    sales.void_sale(db, sale_id)
    return {"ok": True, "message": f"Sale {sale_id} voided, stock restored"}
