from fastapi import APIRouter, Depends
from sqlmodel import Session

from docunlock.config import Settings, get_settings
from docunlock.database import get_session
from docunlock.exceptions import ValidationError
from docunlock.schemas.payment_schemas import PaymentCreate, PaymentResult
from docunlock.services import access_service

router = APIRouter()


@router.post("/payment", response_model=PaymentResult)
def record_payment(
    body: PaymentCreate,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Record an already verified payment and unlock the section.

    No facilitator check happens here; put verification in front of this
    endpoint before exposing it.
    """
    if body.currency_code != settings.currency_code:
        raise ValidationError(
            "Unsupported currency",
            supported_currency=settings.currency_code,
        )

    payment = access_service.record_payment(
        session,
        user_id=body.user_id,
        resource_id=body.resource_id,
        currency_code=body.currency_code,
        amount_minor_units=body.amount_minor_units,
        facilitator_tx_id=body.facilitator_tx_id,
        payment_method=body.payment_method,
    )

    return PaymentResult(transaction_id=payment.facilitator_tx_id)
