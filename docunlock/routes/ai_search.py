from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from docunlock.database import get_session
from docunlock.dependencies.admin import is_admin_request
from docunlock.exceptions import NotFound, PaymentRequired, ValidationError
from docunlock.routes.sections import pdf_response
from docunlock.services import access_service, catalog_service
from docunlock.services.content_resolver import resolve_content

router = APIRouter()


@router.get("/search")
def relevance_search(
    q: Optional[str] = None,
    textbook: Optional[str] = None,
    limit: int = 5,
    session: Session = Depends(get_session),
):
    """Rank a textbook's sections against a question by word overlap."""
    if not q:
        raise ValidationError('Query parameter "q" is required')

    if not textbook:
        raise ValidationError("Textbook parameter is required")

    results = catalog_service.relevance_search(session, q, textbook, limit=limit)
    return {
        "success": True,
        "query": q,
        "textbook": textbook,
        **results,
    }


@router.get("/pdf/{resource_id}")
def retrieve_pdf(
    resource_id: str,
    user_id: str = "anonymous",
    admin: bool = Depends(is_admin_request),
    session: Session = Depends(get_session),
):
    """Open a section referenced by a search result, behind the paywall."""
    section = catalog_service.get_section(session, resource_id)
    if not section:
        raise NotFound("Section not found")

    if not admin and not access_service.has_access(session, user_id, resource_id):
        raise PaymentRequired(section.paywall_dict(), detail="Access denied")

    content = resolve_content(section)

    if content.data is not None:
        return pdf_response(resource_id, content)

    return {
        "success": True,
        "access_granted": True,
        **content.pointer_payload(),
        "resource_id": section.resource_id,
        "title": section.title,
        "section_number": section.section_number,
    }
