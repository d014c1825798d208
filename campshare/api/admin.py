from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from typing import Optional
import logging

from campshare.api.deps import get_db
from campshare.db.models import CampgroundDB, ReviewDB

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _backfill(db, model, dry_run):
    missing = db.query(model).filter(or_(model.created_at.is_(None), model.updated_at.is_(None)))
    matched = missing.count()
    modified = 0
    if not dry_run and matched:
        modified = missing.update(
            {
                model.created_at: func.coalesce(model.created_at, func.now()),
                model.updated_at: func.coalesce(model.updated_at, model.created_at, func.now()),
            },
            synchronize_session=False
        )
    return {"matched": matched, "modified": modified}


@router.post("/backfill-timestamps")
def backfill_timestamps(
    request: Request,
    dryRun: bool = False,
    token: Optional[str] = None,
    x_admin_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    Fill in created_at/updated_at on campgrounds and reviews that lack them.

    Requires the configured admin token in the X-Admin-Token header or the token query parameter.
    With dryRun=true only the rows that would change are counted.
    """
    admin_token = request.app.state.settings.admin_token
    if not admin_token:
        raise HTTPException(status_code=503, detail="ADMIN_TOKEN not configured on server")
    if (x_admin_token or token) != admin_token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    campgrounds = _backfill(db, CampgroundDB, dryRun)
    reviews = _backfill(db, ReviewDB, dryRun)
    if not dryRun:
        db.commit()
        logger.info(f"Timestamp backfill: {campgrounds['modified']} campgrounds, {reviews['modified']} reviews updated")

    return {
        "ok": True,
        "dryRun": dryRun,
        "campgrounds": campgrounds,
        "reviews": reviews
    }
