from pydantic import BaseModel, Field
from typing import Optional


class PaymentCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    resource_id: str = Field(..., min_length=1)
    currency_code: str = Field(..., min_length=1)
    amount_minor_units: int = Field(..., ge=0)
    payment_method: str
    facilitator_tx_id: Optional[str] = None


class PaymentResult(BaseModel):
    success: bool = True
    transaction_id: str
    message: str = "Payment processed successfully"
