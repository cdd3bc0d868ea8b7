from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class UserPayment(SQLModel, table=True):
    __tablename__ = "user_payment"

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: str = Field(index=True)
    resource_id: str = Field(index=True)

    currency_code: str
    amount_minor_units: int
    payment_status: str = Field(default="pending")  # pending | completed | failed | refunded | expired
    payment_method: Optional[str] = None

    facilitator_tx_id: Optional[str] = Field(default=None, index=True)

    paid_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
