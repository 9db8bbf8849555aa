from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from venue_stock.app.api.deps import get_db
from venue_stock.app.schemas.variance import VarianceReportRead, VarianceRowRead, VarianceScope
from venue_stock.services.errors import ValidationError
from venue_stock.services.procurement import variance_for_venue

router = APIRouter(prefix="/venues/{venue_id}/variance")


@router.get("", response_model=VarianceReportRead)
def get_variance(
    venue_id: str,
    department_id: str | None = None,
    db: Session = Depends(get_db),
):
    """
    Variance (READ ONLY)
    - recalculée à chaque appel, jamais persistée
    - filtre département appliqué avant agrégation
    """
    try:
        report = variance_for_venue(db, venue_id, department_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return VarianceReportRead(
        scope=VarianceScope(venue_id=report.venue_id, department_id=report.department_id),
        shortages=[VarianceRowRead.model_validate(r) for r in report.shortages],
        excesses=[VarianceRowRead.model_validate(r) for r in report.excesses],
        total_shortage_value=report.total_shortage_value,
        total_excess_value=report.total_excess_value,
    )
