from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from docunlock.database import get_session
from docunlock.services import access_service

router = APIRouter()


@router.get("/{user_id}/sections")
def user_sections(
    user_id: str,
    textbook: Optional[str] = None,
    session: Session = Depends(get_session),
):
    sections = access_service.get_user_sections(session, user_id, textbook_slug=textbook)
    return {"sections": [s.public_dict() for s in sections]}


@router.get("/{user_id}/payments")
def user_payments(
    user_id: str,
    status: Optional[str] = None,
    session: Session = Depends(get_session),
):
    payments = access_service.get_user_payments(session, user_id, status=status)
    return {"payments": payments}
