from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime

from docunlock.constants.storage import PDF_MIME_TYPE
from docunlock.models.content_location import location_of

if TYPE_CHECKING:
    from .textbook import Textbook


class Section(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    textbook_id: int = Field(foreign_key="textbook.id", index=True)
    section_number: int
    resource_id: str = Field(index=True, unique=True)  # {textbook_slug}-{section_number:03d}
    title: str

    # content location, see models/content_location.py
    pdf_blob: Optional[str] = None  # base64
    r2_key: Optional[str] = Field(default=None, index=True)
    r2_url: Optional[str] = None
    external_key: Optional[str] = None

    # pricing
    currency_code: str = "USDC"
    price_minor_units: int

    # file meta
    mime_type: str = PDF_MIME_TYPE
    size_bytes: Optional[int] = None
    sha256: Optional[str] = None
    word_count: Optional[int] = None

    # search
    summary: Optional[str] = None
    keywords: Optional[str] = None  # comma separated string

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    textbook: Optional["Textbook"] = Relationship(back_populates="sections")

    @property
    def content_location(self):
        return location_of(self)

    @property
    def storage_method(self) -> Optional[str]:
        location = self.content_location
        return location.storage_method if location else None

    def public_dict(self, **extra) -> dict:
        """Row without the inline bytes, safe to put in a JSON response."""
        data = self.model_dump(exclude={"pdf_blob"})
        data["storage_method"] = self.storage_method
        data.update(extra)
        return data

    def paywall_dict(self) -> dict:
        return {
            "resource_id": self.resource_id,
            "title": self.title,
            "currency_code": self.currency_code,
            "price_minor_units": self.price_minor_units,
            "summary": self.summary,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
        }
