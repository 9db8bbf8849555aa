from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from venue_stock.app.api.deps import get_db
from venue_stock.app.db.models.models_v1 import UNASSIGNED_KEY
from venue_stock.app.schemas.suggestions import SuggestedLineIO, SuggestionBucketRead
from venue_stock.services.errors import ValidationError
from venue_stock.services.procurement import suggestions_for_venue

router = APIRouter(prefix="/venues/{venue_id}/suggestions")


@router.get("", response_model=list[SuggestionBucketRead])
def get_suggestions(
    venue_id: str,
    department_id: str | None = None,
    round_to_pack: bool | None = None,
    db: Session = Depends(get_db),
):
    try:
        buckets = suggestions_for_venue(db, venue_id, department_id, round_to_pack)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    out = []
    for key, lines in buckets.items():
        unassigned = key == UNASSIGNED_KEY
        out.append(
            SuggestionBucketRead(
                supplier_key=key,
                supplier_id=None if unassigned else key,
                supplier_name=next((ln.supplier_name for ln in lines if ln.supplier_name), None),
                lines=[SuggestedLineIO.model_validate(ln) for ln in lines],
            )
        )
    return out
