from sqlmodel import SQLModel, Field, UniqueConstraint
from typing import Optional
from datetime import datetime


class UserAccess(SQLModel, table=True):
    __tablename__ = "user_access"
    __table_args__ = (
        UniqueConstraint("user_id", "resource_id", name="uq_user_access"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: str = Field(index=True)
    resource_id: str = Field(index=True)
    textbook_id: int = Field(foreign_key="textbook.id")

    granted_at: datetime = Field(default_factory=datetime.utcnow)
