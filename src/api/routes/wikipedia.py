from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import current_user, get_context
from src.context import PipelineContext
from src.research.wikipedia import article_content, search_articles, search_keywords

router = APIRouter(prefix="/api/wikipedia", tags=["wikipedia"])


class KeywordsRequest(BaseModel):
    title: str


@router.get("/search")
def search(q: str, limit: int = 10, _user: str = Depends(current_user)):
    return {"results": [asdict(a) for a in search_articles(q, limit)]}


@router.get("/content/{pageid}")
def content(pageid: int, _user: str = Depends(current_user)):
    return article_content(pageid)


@router.post("/keywords")
def keywords(body: KeywordsRequest, ctx: PipelineContext = Depends(get_context)):
    return {"keywords": search_keywords(ctx, body.title)}
