"""
Where a section's bytes live.

A section row carries three nullable location groups (``pdf_blob``,
``r2_key``/``r2_url``, ``external_key``). Code never reads those columns
directly to decide placement; it asks :func:`location_of`, which checks them
in a fixed order: inline, object store, external.
"""
from dataclasses import dataclass
from typing import Optional, Union

from docunlock.constants.storage import STORAGE_EXTERNAL, STORAGE_INLINE, STORAGE_R2


@dataclass(frozen=True)
class InlineContent:
    encoded: str  # base64
    storage_method: str = STORAGE_INLINE


@dataclass(frozen=True)
class ObjectStoreContent:
    key: Optional[str]
    url: Optional[str]
    storage_method: str = STORAGE_R2


@dataclass(frozen=True)
class ExternalContent:
    key: str
    storage_method: str = STORAGE_EXTERNAL


ContentLocation = Union[InlineContent, ObjectStoreContent, ExternalContent]


def location_of(section) -> Optional[ContentLocation]:
    if section.pdf_blob:
        return InlineContent(encoded=section.pdf_blob)
    if section.r2_key or section.r2_url:
        return ObjectStoreContent(key=section.r2_key, url=section.r2_url)
    if section.external_key:
        return ExternalContent(key=section.external_key)
    return None
