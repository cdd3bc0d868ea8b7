from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from docunlock.config import Settings, get_settings
from docunlock.database import get_session
from docunlock.exceptions import ValidationError
from docunlock.services import catalog_service

router = APIRouter()


@router.get("/search")
def search_sections(
    q: Optional[str] = None,
    textbook: Optional[str] = None,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    if not q:
        raise ValidationError('Query parameter "q" is required')

    sections = catalog_service.search_sections(
        session, q, textbook_slug=textbook, limit=settings.search_limit
    )
    return {"sections": [s.public_dict() for s in sections]}
