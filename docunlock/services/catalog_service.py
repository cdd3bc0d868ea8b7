import logging
import re
from typing import List, Optional, Tuple

from slugify import slugify
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from docunlock.exceptions import Conflict, ValidationError
from docunlock.models.section import Section
from docunlock.models.textbook import Textbook

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200
RELEVANCE_THRESHOLD = 0.3
WORD_RE = re.compile(r"[\w-]+")


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_section(session: Session, resource_id: str) -> Optional[Section]:
    return session.exec(
        select(Section).where(Section.resource_id == resource_id)
    ).first()


def get_textbook(session: Session, slug: str) -> Optional[Textbook]:
    return session.exec(
        select(Textbook).where(Textbook.slug == slug)
    ).first()


def get_textbook_sections(session: Session, slug: str) -> List[Section]:
    return session.exec(
        select(Section)
        .join(Textbook, Textbook.id == Section.textbook_id)
        .where(Textbook.slug == slug)
        .order_by(Section.section_number)
    ).all()


def list_textbooks(session: Session) -> List[Tuple[Textbook, int]]:
    """Every textbook with its live section count, newest first."""
    rows = session.exec(
        select(Textbook, func.count(Section.id))
        .outerjoin(Section, Section.textbook_id == Textbook.id)
        .group_by(Textbook.id)
        .order_by(Textbook.created_at.desc(), Textbook.id.desc())
    ).all()
    return [(textbook, count) for textbook, count in rows]


def create_textbook(
    session: Session,
    *,
    title: str,
    slug: Optional[str] = None,
    author: Optional[str] = None,
    description: Optional[str] = None,
) -> Textbook:
    if not title or not title.strip():
        raise ValidationError("title is required")

    if not slug or slug.strip() == "":
        slug = slugify(title)

    if get_textbook(session, slug):
        raise Conflict("Textbook with this slug already exists")

    textbook = Textbook(
        slug=slug,
        title=title,
        author=author or None,
        description=description or None,
        total_sections=0,
    )
    session.add(textbook)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("Textbook with this slug already exists")
    session.refresh(textbook)

    logger.info(f"Created textbook {textbook.slug} (id={textbook.id})")
    return textbook


def search_sections(
    session: Session,
    query: str,
    textbook_slug: Optional[str] = None,
    limit: int = 10,
) -> List[Section]:
    """
    Full-text style search over title, summary and keywords.

    Every whitespace separated term must appear (case-insensitive) in at
    least one of the three columns. PDF bytes are never searched.
    """
    terms = [t for t in query.split() if t]
    if not terms:
        return []

    statement = select(Section).join(Textbook, Textbook.id == Section.textbook_id)

    for term in terms:
        pattern = f"%{escape_like(term)}%"
        statement = statement.where(
            or_(
                Section.title.ilike(pattern, escape="\\"),
                Section.summary.ilike(pattern, escape="\\"),
                Section.keywords.ilike(pattern, escape="\\"),
            )
        )

    if textbook_slug:
        statement = statement.where(Textbook.slug == textbook_slug)

    statement = statement.order_by(Section.textbook_id, Section.section_number).limit(limit)
    return session.exec(statement).all()


def _searchable_text(section: Section) -> str:
    if section.summary or section.keywords:
        return f"{section.title}\n\n{section.summary or ''}\n\nKeywords: {section.keywords or ''}"
    if section.external_key:
        return f"{section.title}\n\nThis section contains detailed content. The full content is available externally."
    return f"{section.title}\n\nThis section contains detailed PDF content. The full content is available in the PDF file."


def relevance_score(query: str, content: str) -> float:
    query_words = WORD_RE.findall(query.lower())
    if not query_words:
        return 0.0
    content_words = set(WORD_RE.findall(content.lower()))
    matches = sum(1 for word in query_words if word in content_words)
    return matches / len(query_words)


def extract_snippet(query: str, content: str, length: int = SNIPPET_LENGTH) -> str:
    index = content.lower().find(query.lower())

    if index == -1:
        return content[:length] + "..."

    start = max(0, index - length // 2)
    end = min(len(content), index + length // 2)

    snippet = content[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet


def relevance_search(
    session: Session,
    query: str,
    textbook_slug: str,
    limit: int = 5,
) -> dict:
    """Rank a textbook's sections by query word overlap."""
    results = []

    for section in get_textbook_sections(session, textbook_slug):
        content = _searchable_text(section)
        score = relevance_score(query, content)
        if score <= RELEVANCE_THRESHOLD:
            continue

        results.append({
            "resource_id": section.resource_id,
            "title": section.title,
            "section_number": section.section_number,
            "relevance_score": score,
            "content_snippet": extract_snippet(query, content),
            "r2_url": section.r2_url,
            "external_key": section.external_key,
        })

    results.sort(key=lambda r: r["relevance_score"], reverse=True)

    return {
        "results": results[:limit],
        "total_results": len(results),
    }
