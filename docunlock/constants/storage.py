# wire names for where a section's bytes live
STORAGE_INLINE = "d1_blob"
STORAGE_R2 = "r2_bucket"
STORAGE_EXTERNAL = "external"

PDF_MIME_TYPE = "application/pdf"

MIB = 1024 * 1024


def r2_key_for(textbook_slug: str, resource_id: str) -> str:
    return f"pdfs/{textbook_slug}/{resource_id}.pdf"


def resource_id_for(textbook_slug: str, section_number: int) -> str:
    return f"{textbook_slug}-{section_number:03d}"
