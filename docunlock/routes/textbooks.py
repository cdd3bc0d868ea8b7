from fastapi import APIRouter, Depends
from sqlmodel import Session

from docunlock.database import get_session
from docunlock.exceptions import NotFound
from docunlock.services import catalog_service

router = APIRouter()


@router.get("/{slug}")
def get_textbook(slug: str, session: Session = Depends(get_session)):
    textbook = catalog_service.get_textbook(session, slug)
    if not textbook:
        raise NotFound("Textbook not found")

    return {"textbook": textbook}


@router.get("/{slug}/sections")
def get_textbook_sections(slug: str, session: Session = Depends(get_session)):
    sections = catalog_service.get_textbook_sections(session, slug)
    return {"sections": [s.public_dict() for s in sections]}
