from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from retail_panel.app.api.deps import get_db
from retail_panel.app.schemas.sale import sale_to_dict
from retail_panel.services.reporting import dashboard_stats

router = APIRouter(prefix="/dashboard")


@router.get("")
def get_dashboard(
    type: str | None = None,
    days: int = Query(default=7, ge=1, le=366),
    recent: int = Query(default=5, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Lecture seule : agrégats pour le tableau de bord, facette type optionnelle."""
    stats = dashboard_stats(db, product_type=type, trend_days=days, recent_limit=recent)
    stats["recent_activity"] = [sale_to_dict(s) for s in stats["recent_activity"]]
    return stats
