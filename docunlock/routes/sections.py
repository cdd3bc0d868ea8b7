import logging

from fastapi import APIRouter, Depends, Header
from fastapi.responses import Response
from sqlmodel import Session

from docunlock.database import get_session
from docunlock.dependencies.admin import is_admin_request
from docunlock.exceptions import AccessDenied, NotFound, PaymentRequired
from docunlock.services import access_service, catalog_service
from docunlock.services.content_resolver import ResolvedContent, resolve_content

logger = logging.getLogger(__name__)

router = APIRouter()


def pdf_response(resource_id: str, content: ResolvedContent) -> Response:
    return Response(
        content=content.data,
        media_type=content.mime_type,
        headers={
            "Content-Disposition": f'inline; filename="{resource_id}.pdf"',
            "Cache-Control": "public, max-age=3600",
        },
    )


@router.get("/section/{resource_id}")
def get_section(
    resource_id: str,
    x_user_id: str = Header("anonymous"),
    session: Session = Depends(get_session),
):
    section = catalog_service.get_section(session, resource_id)
    if not section:
        raise NotFound("Section not found")

    if not access_service.has_access(session, x_user_id, resource_id):
        raise PaymentRequired(section.paywall_dict())

    return {"section": section.public_dict()}


@router.get("/section/{resource_id}/content")
def get_section_content(
    resource_id: str,
    user_id: str = "anonymous",
    admin: bool = Depends(is_admin_request),
    session: Session = Depends(get_session),
):
    if admin:
        logger.info(f"Admin bypass for {resource_id}")
    elif not access_service.has_access(session, user_id, resource_id):
        raise AccessDenied()

    content = resolve_content(catalog_service.get_section(session, resource_id))

    if content.data is not None:
        return pdf_response(resource_id, content)

    return content.pointer_payload()
