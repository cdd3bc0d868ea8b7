"""
Storage tiering for section PDFs.

Small files live inline in the ``section`` row as base64 text; large files
live in the R2 bucket under ``pdfs/{textbook_slug}/{resource_id}.pdf`` and
the row keeps the key and public URL. After any write exactly one location
is populated on the row.

Sweeps (migrate, optimize, cleanup) never stop on a single failure. Each item
is committed on its own and its outcome is reported back to the caller.
Objects are always written before the row is switched, so a crash between
the two leaves the row servable from its old location and, at worst, an
orphaned object for ``cleanup_orphaned_objects`` to collect.
"""
import base64
import hashlib
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import case, func
from sqlmodel import Session, select

from docunlock.constants.storage import MIB, PDF_MIME_TYPE, r2_key_for, resource_id_for
from docunlock.exceptions import PayloadTooLarge, StorageNotConfigured, ValidationError
from docunlock.models.section import Section
from docunlock.models.textbook import Textbook
from docunlock.services.catalog_service import get_section
from docunlock.services.r2_client import R2Storage

logger = logging.getLogger(__name__)


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def encode_inline(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_inline(encoded: str) -> bytes:
    return base64.b64decode(encoded)


def title_from_filename(filename: str) -> str:
    name = filename or "untitled.pdf"
    if name.lower().endswith(".pdf"):
        name = name[:-4]
    return name.replace("_", " ")


def _require_store(store: Optional[R2Storage]) -> R2Storage:
    if store is None:
        raise StorageNotConfigured()
    return store


def _recount_sections(session: Session, textbook: Textbook) -> None:
    textbook.total_sections = session.exec(
        select(func.count(Section.id)).where(Section.textbook_id == textbook.id)
    ).one()
    textbook.updated_at = datetime.utcnow()
    session.add(textbook)


# -------------------------------
# Upload placement
# -------------------------------

def place_upload(
    session: Session,
    store: Optional[R2Storage],
    *,
    textbook: Textbook,
    section_number: int,
    filename: str,
    data: bytes,
    price_minor_units: int,
    currency_code: str,
    inline_limit_bytes: int = MIB,
) -> Section:
    """
    Store an uploaded PDF and write its section row.

    Files up to ``inline_limit_bytes`` go inline. Larger files go to R2, or
    raise PayloadTooLarge when no bucket is configured. Empty files are
    rejected. An existing section with the same resource id is replaced.
    """
    if not data:
        raise ValidationError("Uploaded file is empty")

    size_bytes = len(data)
    resource_id = resource_id_for(textbook.slug, section_number)
    title = title_from_filename(filename)
    digest = sha256_hex(data)

    if size_bytes > inline_limit_bytes and store is None:
        raise PayloadTooLarge(size_bytes, inline_limit_bytes)

    pdf_blob = r2_key = r2_url = None
    if size_bytes <= inline_limit_bytes:
        pdf_blob = encode_inline(data)
    else:
        r2_key = r2_key_for(textbook.slug, resource_id)
        store.put_pdf(
            r2_key,
            data,
            {
                "resourceId": resource_id,
                "textbookSlug": textbook.slug,
                "originalName": filename or "",
            },
        )
        stored = store.head(r2_key)
        if stored is None or stored["size"] != size_bytes:
            raise RuntimeError(f"R2 object {r2_key} missing or incomplete after upload")
        r2_url = store.public_url(r2_key)

    section = get_section(session, resource_id)
    if section is None:
        section = Section(
            textbook_id=textbook.id,
            section_number=section_number,
            resource_id=resource_id,
            title=title,
            price_minor_units=price_minor_units,
        )

    section.textbook_id = textbook.id
    section.section_number = section_number
    section.title = title
    section.pdf_blob = pdf_blob
    section.r2_key = r2_key
    section.r2_url = r2_url
    section.external_key = None
    section.currency_code = currency_code
    section.price_minor_units = price_minor_units
    section.mime_type = PDF_MIME_TYPE
    section.size_bytes = size_bytes
    section.sha256 = digest
    section.summary = f"Uploaded PDF section: {title}"
    section.keywords = f"pdf, {textbook.slug}, section-{section_number}"
    section.updated_at = datetime.utcnow()

    session.add(section)
    session.flush()
    _recount_sections(session, textbook)
    session.commit()
    session.refresh(section)

    logger.info(
        f"Stored {resource_id} ({size_bytes} bytes) as {section.storage_method}"
    )
    return section


# -------------------------------
# Migration sweeps
# -------------------------------

def _migrate_section(session: Session, store: R2Storage, section: Section, textbook_slug: str) -> str:
    data = decode_inline(section.pdf_blob)

    if section.sha256 and sha256_hex(data) != section.sha256:
        raise ValueError("sha256 mismatch, inline bytes are corrupt")

    key = r2_key_for(textbook_slug, section.resource_id)
    store.put_pdf(
        key,
        data,
        {
            "resourceId": section.resource_id,
            "textbookSlug": textbook_slug,
            "originalName": f"{section.resource_id}.pdf",
        },
    )

    stored = store.get(key)
    if stored is None or sha256_hex(stored) != sha256_hex(data):
        raise RuntimeError(f"R2 object {key} does not match the inline bytes")

    # pointer and cleared blob land in the same commit
    section.r2_key = key
    section.r2_url = store.public_url(key)
    section.pdf_blob = None
    section.updated_at = datetime.utcnow()
    session.add(section)
    session.commit()
    return key


def _inline_candidates(session: Session, min_size_bytes: Optional[float] = None):
    statement = (
        select(Section, Textbook.slug)
        .join(Textbook, Textbook.id == Section.textbook_id)
        .where(Section.pdf_blob.is_not(None))
        .where(Section.r2_key.is_(None))
    )
    if min_size_bytes is not None:
        statement = statement.where(Section.size_bytes > min_size_bytes)
    return session.exec(statement.order_by(Section.id)).all()


def _run_migration(session: Session, store: R2Storage, candidates) -> List[Dict]:
    results = []

    for section, textbook_slug in candidates:
        resource_id = section.resource_id
        try:
            key = _migrate_section(session, store, section, textbook_slug)
        except Exception as e:
            session.rollback()
            logger.warning(f"Migration of {resource_id} failed: {e}")
            results.append({
                "resource_id": resource_id,
                "status": "error",
                "message": str(e) or e.__class__.__name__,
            })
            continue

        logger.info(f"Migrated {resource_id} to {key}")
        results.append({
            "resource_id": resource_id,
            "status": "success",
            "r2_key": key,
        })

    return results


def migrate_to_object_store(session: Session, store: Optional[R2Storage]) -> Dict:
    """Move every inline section to R2. Re-running is a no-op."""
    store = _require_store(store)
    results = _run_migration(session, store, _inline_candidates(session))

    migrated = sum(1 for r in results if r["status"] == "success")
    return {
        "migrated_count": migrated,
        "error_count": len(results) - migrated,
        "results": results,
    }


def optimize_storage(session: Session, store: Optional[R2Storage], threshold_mb: float = 0.5) -> Dict:
    """Move inline sections larger than ``threshold_mb`` MiB to R2."""
    store = _require_store(store)
    threshold_bytes = threshold_mb * MIB
    details = _run_migration(session, store, _inline_candidates(session, threshold_bytes))

    return {
        "migrated": sum(1 for d in details if d["status"] == "success"),
        "errors": [d["message"] for d in details if d["status"] == "error"],
        "details": details,
    }


# -------------------------------
# Orphan cleanup
# -------------------------------

def _is_referenced(session: Session, key: str) -> bool:
    # end the read transaction so rows committed by other sessions are visible
    session.commit()
    return session.exec(select(Section.id).where(Section.r2_key == key)).first() is not None


def cleanup_orphaned_objects(session: Session, store: Optional[R2Storage]) -> Dict:
    """Delete bucket objects no section row points at."""
    store = _require_store(store)

    # list before reading references; rows committed later are caught by the re-check
    keys = store.list_keys()
    referenced = set(
        session.exec(select(Section.r2_key).where(Section.r2_key.is_not(None))).all()
    )
    orphaned = [key for key in keys if key not in referenced]

    cleaned = 0
    errors = []
    for key in list(orphaned):
        if _is_referenced(session, key):
            orphaned.remove(key)
            continue
        try:
            store.delete(key)
            cleaned += 1
        except Exception as e:
            logger.warning(f"Failed to delete orphan {key}: {e}")
            errors.append(f"Failed to delete {key}: {e}")

    logger.info(f"Orphan cleanup: checked={len(keys)} orphaned={len(orphaned)} cleaned={cleaned}")
    return {
        "checked": len(keys),
        "orphaned": len(orphaned),
        "cleaned": cleaned,
        "errors": errors,
    }


# -------------------------------
# Analysis (read only)
# -------------------------------

def _size_stats(session: Session, condition) -> Dict:
    count, total, avg = session.exec(
        select(
            func.count(Section.id),
            func.sum(Section.size_bytes),
            func.avg(Section.size_bytes),
        ).where(condition)
    ).one()
    return {
        "count": count or 0,
        "total_size": int(total or 0),
        "avg_size": float(avg or 0),
    }


def analyze_storage(session: Session) -> Dict:
    d1_blobs = _size_stats(session, Section.pdf_blob.is_not(None))
    r2_objects = _size_stats(session, Section.r2_key.is_not(None))
    external = _size_stats(session, Section.external_key.is_not(None))

    recommendations = []
    if d1_blobs["count"] > 0:
        avg_size_mb = d1_blobs["avg_size"] / MIB
        if avg_size_mb > 0.5:
            recommendations.append(
                f"Consider migrating D1 blobs to R2 (avg size: {avg_size_mb:.2f}MB)"
            )

    if r2_objects["count"] == 0 and d1_blobs["count"] > 0:
        recommendations.append(
            "No R2 objects found. Consider migrating D1 blobs to R2 for better performance."
        )

    return {
        "d1_blobs": d1_blobs,
        "r2_objects": r2_objects,
        "external": external,
        "recommendations": recommendations,
    }


def storage_breakdown(session: Session) -> List[Dict]:
    def flag(condition):
        return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

    def size_if(condition):
        return func.coalesce(func.sum(case((condition, Section.size_bytes), else_=0)), 0)

    total_size = func.coalesce(func.sum(Section.size_bytes), 0).label("total_size")

    rows = session.exec(
        select(
            Textbook.slug,
            Textbook.title,
            func.count(Section.id),
            flag(Section.pdf_blob.is_not(None)),
            flag(Section.r2_key.is_not(None)),
            flag(Section.external_key.is_not(None)),
            total_size,
            size_if(Section.pdf_blob.is_not(None)),
            size_if(Section.r2_key.is_not(None)),
        )
        .outerjoin(Section, Section.textbook_id == Textbook.id)
        .group_by(Textbook.id, Textbook.slug, Textbook.title)
        .order_by(total_size.desc(), Textbook.slug)
    ).all()

    return [
        {
            "textbook_slug": slug,
            "textbook_title": title,
            "total_sections": int(total_sections),
            "d1_sections": int(d1_sections),
            "r2_sections": int(r2_sections),
            "external_sections": int(external_sections),
            "total_size": int(size),
            "d1_size": int(d1_size),
            "r2_size": int(r2_size),
        }
        for (
            slug, title, total_sections, d1_sections, r2_sections,
            external_sections, size, d1_size, r2_size,
        ) in rows
    ]
