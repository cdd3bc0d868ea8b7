import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlmodel import Session

from docunlock.config import Settings, get_settings
from docunlock.database import get_session
from docunlock.dependencies.admin import require_admin
from docunlock.exceptions import NotFound, ValidationError
from docunlock.schemas.textbook_schemas import TextbookCreate, TextbookWithCount
from docunlock.services import catalog_service
from docunlock.services.r2_client import R2Storage, get_blob_store
from docunlock.services.storage_tiering import place_upload

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


def _as_int(value: Optional[str], default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@router.post("/upload")
def upload_section(
    file: Optional[UploadFile] = File(None),
    textbook_slug: Optional[str] = Form(None),
    section_number: Optional[str] = Form(None),
    price_minor_units: Optional[str] = Form(None),
    session: Session = Depends(get_session),
    store: Optional[R2Storage] = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
):
    """
    Upload one section PDF.

    The title comes from the filename (``Intro_to_Blockchain.pdf`` becomes
    ``Intro to Blockchain``) and the resource id from slug and section number.
    """
    if file is None:
        raise ValidationError("No PDF file provided")

    if not textbook_slug:
        raise ValidationError("textbook_slug is required")

    textbook = catalog_service.get_textbook(session, textbook_slug)
    if not textbook:
        raise NotFound("Textbook not found")

    data = file.file.read()
    if not data:
        raise ValidationError("Uploaded file is empty")

    section = place_upload(
        session,
        store,
        textbook=textbook,
        section_number=_as_int(section_number, 1),
        filename=file.filename,
        data=data,
        price_minor_units=_as_int(price_minor_units, settings.default_price_minor_units),
        currency_code=settings.currency_code,
        inline_limit_bytes=settings.inline_storage_limit_bytes,
    )

    payload = {
        "resource_id": section.resource_id,
        "title": section.title,
        "section_number": section.section_number,
        "textbook_slug": textbook.slug,
        "size_bytes": section.size_bytes,
        "sha256": section.sha256,
        "price_minor_units": section.price_minor_units,
        "currency_code": section.currency_code,
        "storage_method": section.storage_method,
    }
    if section.r2_url:
        payload["r2_url"] = section.r2_url

    return {"success": True, "section": payload}


@router.post("/textbooks")
def create_textbook(
    body: TextbookCreate,
    session: Session = Depends(get_session),
):
    textbook = catalog_service.create_textbook(
        session,
        slug=body.slug,
        title=body.title,
        author=body.author,
        description=body.description,
    )
    return {
        "success": True,
        "textbook": {
            "id": textbook.id,
            "slug": textbook.slug,
            "title": textbook.title,
            "author": textbook.author,
            "description": textbook.description,
        },
    }


@router.get("/textbooks")
def list_textbooks(session: Session = Depends(get_session)):
    rows = catalog_service.list_textbooks(session)
    return {
        "textbooks": [
            TextbookWithCount.model_validate(textbook).model_copy(update={"section_count": count})
            for textbook, count in rows
        ]
    }


@router.get("/textbooks/{slug}/sections")
def list_textbook_sections(slug: str, session: Session = Depends(get_session)):
    sections = catalog_service.get_textbook_sections(session, slug)
    return {"sections": [s.public_dict(textbook_slug=slug) for s in sections]}
