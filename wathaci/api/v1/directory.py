"""
Directory and knowledge base API endpoints (read-mostly, open to anon)
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from wathaci.api.deps import encode, get_actor, get_db, require_authenticated, translate_errors
from wathaci.application.directory import list_directory
from wathaci.application.knowledge import UpsertKnowledgeEntryUseCase, search_knowledge
from wathaci.security.policies import Actor


router = APIRouter(prefix="/api/v1", tags=["directory"])


class KnowledgeEntryRequest(BaseModel):
    slug: str
    title: str
    category: str
    content: str
    audience: str = "all"
    tags: list[str] = []
    is_active: bool = True


class KnowledgeEntryResponse(BaseModel):
    slug: str
    title: str
    category: str
    audience: str
    content: str
    tags: list[str]


@router.get("/directory")
def directory(
    account_type: Optional[str] = None,
    q: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Profiles with an account type, with their role extension"""
    with translate_errors():
        entries = list_directory(db, actor, account_type=account_type, search=q, limit=limit, offset=offset)
    return encode(entries)


@router.get("/knowledge", response_model=list[KnowledgeEntryResponse])
def knowledge_search(
    q: Optional[str] = None,
    audience: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = Query(10, ge=1, le=50),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    entries = search_knowledge(db, actor, query=q, audience=audience, category=category, limit=limit)
    return [
        KnowledgeEntryResponse(
            slug=e.slug,
            title=e.title,
            category=e.category,
            audience=e.audience,
            content=e.content,
            tags=e.tags or [],
        )
        for e in entries
    ]


@router.put("/knowledge")
def knowledge_upsert(
    req: KnowledgeEntryRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    """Create or update an entry by slug (admins only, enforced by policy)"""
    with translate_errors():
        entry_id = UpsertKnowledgeEntryUseCase(db).execute(
            actor=actor,
            slug=req.slug,
            title=req.title,
            category=req.category,
            content=req.content,
            audience=req.audience,
            tags=req.tags,
            is_active=req.is_active,
        )
    return {"id": str(entry_id), "slug": req.slug.strip().lower()}
