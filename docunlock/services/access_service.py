"""
Entitlements and the payment ledger.

Entitlement is binary: a ``user_access`` row for (user, resource) means the
user may read the resource. Rows are only ever inserted, never updated or
deleted, so ``NoAccess -> Access`` is the only transition. Payment status is
not consulted here; a refunded ledger entry leaves the grant in place.

``record_payment`` is the trusted internal call. It must only be reached
after the payment has been verified with the facilitator out of band.
"""
import logging
import time
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, select

from docunlock.constants.payment_status import COMPLETED, PAYMENT_STATUSES
from docunlock.exceptions import NotFound, ValidationError
from docunlock.models.section import Section
from docunlock.models.textbook import Textbook
from docunlock.models.user_access import UserAccess
from docunlock.models.user_payment import UserPayment
from docunlock.services.catalog_service import get_section

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def generate_transaction_id() -> str:
    return f"tx_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def has_access(session: Session, user_id: str, resource_id: str) -> bool:
    row = session.exec(
        select(UserAccess.id)
        .where(UserAccess.user_id == user_id)
        .where(UserAccess.resource_id == resource_id)
    ).first()
    return row is not None


def _insert_access_ignore(session: Session, user_id: str, resource_id: str, textbook_id: int):
    dialect = session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise RuntimeError(f"Unsupported database dialect for grants: {dialect}")

    # the unique constraint serializes concurrent grants for the same pair
    statement = (
        insert(UserAccess)
        .values(
            user_id=user_id,
            resource_id=resource_id,
            textbook_id=textbook_id,
            granted_at=datetime.utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["user_id", "resource_id"])
    )
    session.exec(statement)


def grant_access(session: Session, user_id: str, resource_id: str, *, commit: bool = True) -> None:
    """Idempotent. Raises NotFound for an unknown resource."""
    section = get_section(session, resource_id)
    if not section:
        raise NotFound("Section not found")

    _insert_access_ignore(session, user_id, resource_id, section.textbook_id)

    if commit:
        session.commit()

    logger.info(f"Granted {user_id} access to {resource_id}")


def record_payment(
    session: Session,
    *,
    user_id: str,
    resource_id: str,
    currency_code: str,
    amount_minor_units: int,
    facilitator_tx_id: Optional[str] = None,
    payment_method: Optional[str] = None,
) -> UserPayment:
    """
    Append a completed ledger entry and grant access in one transaction.

    Either both rows are written or neither is.
    """
    if not get_section(session, resource_id):
        raise NotFound("Section not found")

    transaction_id = facilitator_tx_id or generate_transaction_id()
    now = datetime.utcnow()

    payment = UserPayment(
        user_id=user_id,
        resource_id=resource_id,
        currency_code=currency_code,
        amount_minor_units=amount_minor_units,
        payment_status=COMPLETED,
        payment_method=payment_method,
        facilitator_tx_id=transaction_id,
        paid_at=now,
        created_at=now,
    )

    try:
        session.add(payment)
        session.flush()
        grant_access(session, user_id, resource_id, commit=False)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception(f"Payment {transaction_id} for {user_id}/{resource_id} rolled back")
        raise

    session.refresh(payment)
    logger.info(
        f"Recorded payment {transaction_id}: {user_id} paid "
        f"{amount_minor_units} {currency_code} for {resource_id}"
    )
    return payment


def get_user_sections(session: Session, user_id: str, textbook_slug: Optional[str] = None) -> List[Section]:
    statement = (
        select(Section)
        .join(UserAccess, UserAccess.resource_id == Section.resource_id)
        .join(Textbook, Textbook.id == Section.textbook_id)
        .where(UserAccess.user_id == user_id)
    )

    if textbook_slug:
        statement = statement.where(Textbook.slug == textbook_slug)

    return session.exec(statement.order_by(Section.section_number)).all()


def get_user_payments(session: Session, user_id: str, status: Optional[str] = None) -> List[UserPayment]:
    statement = select(UserPayment).where(UserPayment.user_id == user_id)

    if status:
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Unknown payment status: {status}")
        statement = statement.where(UserPayment.payment_status == status)

    statement = statement.order_by(UserPayment.created_at.desc(), UserPayment.id.desc())
    return session.exec(statement).all()
