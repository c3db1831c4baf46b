"""
Knowledge base use-cases and search.
"""
import re
import uuid

from sqlalchemy import bindparam, or_, text
from sqlalchemy.orm import Session

from wathaci.domain.account_types import ACCOUNT_TYPES
from wathaci.infrastructure.db.models import KnowledgeEntry
from wathaci.infrastructure.db.session import is_postgres
from wathaci.security.policies import Actor, authorize_write, visible


# ── Constants ──

CATEGORIES = ("signup", "signin", "profile", "payments", "matching", "support", "general")
AUDIENCES = ("all",) + ACCOUNT_TYPES

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


# ── Errors ──

class KnowledgeValidationError(ValueError):
    pass


def _normalize_tags(tags) -> list[str]:
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return sorted(set(t.strip().lower() for t in tags if t and t.strip()))


# ── Use Cases ──

class UpsertKnowledgeEntryUseCase:
    """Create an entry, or update the entry with the same slug."""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        actor: Actor,
        slug: str,
        title: str,
        category: str,
        content: str,
        audience: str = "all",
        tags=None,
        is_active: bool = True,
    ) -> uuid.UUID:
        slug = (slug or "").strip().lower()
        title = (title or "").strip()
        if not SLUG_RE.match(slug):
            raise KnowledgeValidationError(f"Invalid slug: {slug!r}")
        if not title:
            raise KnowledgeValidationError("Title is required")
        if category not in CATEGORIES:
            raise KnowledgeValidationError(f"Invalid category: {category}")
        if audience not in AUDIENCES:
            raise KnowledgeValidationError(f"Invalid audience: {audience}")
        if not (content or "").strip():
            raise KnowledgeValidationError("Content is required")

        entry = self.db.query(KnowledgeEntry).filter(KnowledgeEntry.slug == slug).first()
        command = "update"
        if entry is None:
            entry = KnowledgeEntry(slug=slug)
            command = "insert"

        entry.title = title
        entry.category = category
        entry.audience = audience
        entry.content = content
        entry.tags = _normalize_tags(tags)
        entry.is_active = is_active

        authorize_write(actor, command, entry)
        self.db.add(entry)
        self.db.flush()
        self.db.commit()
        return entry.id


# ── Read service ──

def search_knowledge(
    db: Session,
    actor: Actor,
    query: str | None = None,
    audience: str | None = None,
    category: str | None = None,
    limit: int = 10,
) -> list[KnowledgeEntry]:
    """
    Search active entries.

    PostgreSQL ranks matches of the generated search_document column;
    other databases fall back to case-insensitive substring matching.
    Entries for audience "all" are always included.
    """
    q = visible(db, KnowledgeEntry, actor).filter(KnowledgeEntry.is_active.is_(True))
    if audience:
        q = q.filter(KnowledgeEntry.audience.in_(("all", audience)))
    if category:
        q = q.filter(KnowledgeEntry.category == category)

    query = (query or "").strip()
    if not query:
        return q.order_by(KnowledgeEntry.title).limit(limit).all()

    if is_postgres(db):
        ts_query = bindparam("ts_query", query)
        q = q.filter(
            text("wathaci_knowledge.search_document @@ plainto_tsquery('english', :ts_query)").bindparams(ts_query)
        ).order_by(
            text("ts_rank(wathaci_knowledge.search_document, plainto_tsquery('english', :ts_query)) DESC").bindparams(ts_query)
        )
        return q.limit(limit).all()

    pattern = f"%{query}%"
    q = q.filter(or_(KnowledgeEntry.title.ilike(pattern), KnowledgeEntry.content.ilike(pattern)))
    return q.order_by(KnowledgeEntry.title).limit(limit).all()
