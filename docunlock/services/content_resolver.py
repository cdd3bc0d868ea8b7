"""
Turn a section row into something a client can read.

Callers decide access first; this module only looks at where the bytes
live. Lookup order is fixed: inline bytes, then the R2 pointer, then the
external pointer. A row caught mid-migration with both inline bytes and a
pointer is served inline; clearing the old field is the tiering sweep's job.
"""
from dataclasses import dataclass
from typing import Optional

from docunlock.exceptions import NoContent, NotFound
from docunlock.models.content_location import (
    ContentLocation,
    ExternalContent,
    InlineContent,
    ObjectStoreContent,
)
from docunlock.models.section import Section
from docunlock.services.storage_tiering import decode_inline


@dataclass
class ResolvedContent:
    location: ContentLocation
    mime_type: str
    data: Optional[bytes] = None  # only set for inline content

    @property
    def storage_method(self) -> str:
        return self.location.storage_method

    def pointer_payload(self) -> dict:
        """JSON body for content the client fetches itself."""
        if isinstance(self.location, ObjectStoreContent):
            return {
                "storage_method": self.storage_method,
                "r2_key": self.location.key,
                "r2_url": self.location.url,
                "mime_type": self.mime_type,
            }
        if isinstance(self.location, ExternalContent):
            return {
                "storage_method": self.storage_method,
                "external_key": self.location.key,
                "mime_type": self.mime_type,
            }
        raise TypeError("inline content has no pointer")


def resolve_content(section: Optional[Section]) -> ResolvedContent:
    if section is None:
        raise NotFound("Section not found")

    location = section.content_location
    if location is None:
        raise NoContent()

    if isinstance(location, InlineContent):
        return ResolvedContent(
            location=location,
            mime_type=section.mime_type,
            data=decode_inline(location.encoded),
        )

    return ResolvedContent(location=location, mime_type=section.mime_type)
