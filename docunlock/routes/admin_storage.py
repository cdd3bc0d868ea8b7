from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from docunlock.config import Settings, get_settings
from docunlock.database import get_session
from docunlock.dependencies.admin import require_admin
from docunlock.services import storage_tiering
from docunlock.services.r2_client import R2Storage, get_blob_store

router = APIRouter(dependencies=[Depends(require_admin)])


# Sweeps always answer 200; per section failures are inside the body.

@router.post("/migrate-to-r2")
def migrate_to_r2(
    session: Session = Depends(get_session),
    store: Optional[R2Storage] = Depends(get_blob_store),
):
    summary = storage_tiering.migrate_to_object_store(session, store)
    return {"success": True, **summary}


@router.get("/storage-analysis")
def storage_analysis(session: Session = Depends(get_session)):
    return {
        "success": True,
        "analysis": storage_tiering.analyze_storage(session),
        "breakdown": storage_tiering.storage_breakdown(session),
    }


@router.post("/optimize-storage")
def optimize_storage(
    threshold: Optional[float] = None,
    session: Session = Depends(get_session),
    store: Optional[R2Storage] = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
):
    if threshold is None:
        threshold = settings.optimize_threshold_mb

    summary = storage_tiering.optimize_storage(session, store, threshold_mb=threshold)
    return {"success": True, **summary}


@router.post("/cleanup-orphaned")
def cleanup_orphaned(
    session: Session = Depends(get_session),
    store: Optional[R2Storage] = Depends(get_blob_store),
):
    summary = storage_tiering.cleanup_orphaned_objects(session, store)
    return {"success": True, **summary}
