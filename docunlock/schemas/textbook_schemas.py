from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class TextbookCreate(BaseModel):
    slug: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=200)
    author: Optional[str] = None
    description: Optional[str] = None


class TextbookResponse(BaseModel):
    id: int
    slug: str
    title: str
    author: Optional[str]
    description: Optional[str]
    total_sections: int

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TextbookWithCount(TextbookResponse):
    section_count: int = 0
