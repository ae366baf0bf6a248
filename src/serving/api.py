"""HTTP API surface for tracked publications and their articles."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config.version import PROJECT_VERSION
from src.contracts import ArticleRecord, PublicationRecord
from src.pipeline.errors import (
    ClassificationRejected,
    FetchError,
    NoContentFound,
    PublicationNotFound,
)
from src.pipeline.service import BlogScoutService
from src.utils.logger import get_logger


class IngestRequest(BaseModel):
    url: Optional[str] = None


class RefreshRequest(BaseModel):
    force: bool = False


class ArticlesQuery(BaseModel):
    feed_id: Optional[str] = None
    limit: int = Field(default=20, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


def _publication_payload(record: PublicationRecord) -> Dict[str, Any]:
    return record.model_dump_for_storage()


def _article_payload(record: ArticleRecord) -> Dict[str, Any]:
    return record.model_dump_for_storage()


def _refresh_message(force: bool, refreshed: int) -> str:
    if force:
        return f"Forced refresh completed. {refreshed} feeds refreshed."
    if refreshed > 0:
        return f"{refreshed} feeds refreshed"
    return "No feeds need refreshing"


def create_app(service: Optional[BlogScoutService] = None) -> FastAPI:
    """Create a configured FastAPI application."""

    blog_service = service or BlogScoutService()
    module_logger = get_logger().create_module_logger("serving.api")
    app = FastAPI(title="BlogScout API", version=PROJECT_VERSION)

    def get_service() -> BlogScoutService:
        return blog_service

    def get_articles_query(
        feed_id: Optional[str] = Query(None, alias="feed_id"),
        limit: int = Query(20, alias="limit"),
        offset: int = Query(0, alias="offset"),
    ) -> ArticlesQuery:
        try:
            return ArticlesQuery(feed_id=feed_id, limit=limit, offset=offset)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid pagination parameters") from exc

    @app.get("/healthz")
    def health_probe(svc: BlogScoutService = Depends(get_service)) -> Dict[str, Any]:
        return {
            "status": "ok",
            "details": {"feeds": len(svc.list_publications())},
        }

    @app.post("/api/feeds", status_code=201)
    async def add_feed(
        payload: Optional[IngestRequest] = Body(None),
        svc: BlogScoutService = Depends(get_service),
    ):
        url = ((payload.url if payload else None) or "").strip()
        if not url:
            return JSONResponse(status_code=400, content={"error": "Missing URL"})
        try:
            result = await svc.ingest(url)
        except ClassificationRejected as exc:
            return JSONResponse(status_code=422, content={"error": str(exc)})
        except FetchError as exc:
            return JSONResponse(status_code=502, content={"error": str(exc)})
        except NoContentFound as exc:
            return JSONResponse(status_code=404, content={"error": str(exc)})
        module_logger.info(
            {
                "event": "api.feed.added",
                "details": {
                    "feed_id": result.publication.id,
                    "created": result.created,
                    "added": result.added_count,
                },
            }
        )
        return {
            "feed": _publication_payload(result.publication),
            "postsCount": result.added_count,
        }

    @app.get("/api/feeds")
    def list_feeds(svc: BlogScoutService = Depends(get_service)) -> Dict[str, Any]:
        return {"feeds": [_publication_payload(p) for p in svc.list_publications()]}

    @app.delete("/api/feeds/{feed_id}")
    async def delete_feed(feed_id: str, svc: BlogScoutService = Depends(get_service)):
        try:
            removed = await svc.delete_feed(feed_id)
        except PublicationNotFound as exc:
            return JSONResponse(status_code=404, content={"error": str(exc)})
        return {"success": True, "removedPosts": removed}

    @app.post("/api/feeds/refresh")
    async def refresh_feeds(
        payload: Optional[RefreshRequest] = Body(None),
        svc: BlogScoutService = Depends(get_service),
    ) -> Dict[str, Any]:
        force = payload.force if payload else False
        report = await svc.refresh_due(force=force)
        return {
            "message": _refresh_message(force, report.refreshed_count),
            "refreshedCount": report.refreshed_count,
            "errors": report.errors,
        }

    @app.get("/api/feeds/refresh")
    def feeds_needing_refresh(svc: BlogScoutService = Depends(get_service)) -> Dict[str, Any]:
        due: List[PublicationRecord] = svc.due_publications()
        return {
            "feedsNeedingRefresh": len(due),
            "feeds": [
                {
                    "id": publication.id,
                    "title": publication.title,
                    "url": publication.url,
                    "last_fetched": (
                        publication.last_fetched.isoformat() if publication.last_fetched else None
                    ),
                }
                for publication in due
            ],
        }

    @app.get("/api/posts")
    def list_posts(
        params: ArticlesQuery = Depends(get_articles_query),
        svc: BlogScoutService = Depends(get_service),
    ) -> Dict[str, Any]:
        articles, total = svc.list_articles(
            params.feed_id, limit=params.limit, offset=params.offset
        )
        return {"posts": [_article_payload(a) for a in articles], "total": total}

    return app


__all__ = ["create_app"]
