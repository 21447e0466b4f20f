"""FastAPI JSON interface for the citation engine.

Run with:
    uvicorn simplecite.web:app --reload

``GET /proxy`` fetches caller-supplied URLs server side. Only http and https
targets are accepted, but internal hosts are still reachable, so deploy the
app behind a network boundary that limits what the server can reach.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from .app import CitationApp, CitationDraft
from .config import get_settings
from .errors import NetworkFailure
from .fetching import HTML_ACCEPT, http_get
from .models import CitationRecord, CitationStyle, Metadata, MetadataSource
from .normalization import normalize
from .store import get_connection, init_db

app = FastAPI(title="SimpleCite", description="Resolve URLs into formatted citations")

PROXY_SCHEMES = ("http", "https")

_citation_app: Optional[CitationApp] = None


def get_citation_app() -> CitationApp:
    global _citation_app
    if _citation_app is None:
        conn = get_connection(get_settings().database_path)
        init_db(conn)
        _citation_app = CitationApp(conn=conn)
    return _citation_app


class MetadataIn(BaseModel):
    title: str = ""
    author: str = ""
    year: str = ""
    site: str = ""
    publisher: str = ""
    url: str = ""
    accessed: str = ""
    source: Optional[MetadataSource] = None

    def to_metadata(self) -> Metadata:
        return normalize(self.model_dump(mode="json"))


class ResolveRequest(BaseModel):
    url: str
    style: CitationStyle = CitationStyle.APA7


class FormatRequest(BaseModel):
    meta: MetadataIn
    style: CitationStyle = CitationStyle.APA7


class SaveRequest(FormatRequest):
    id: Optional[int] = None


def _draft_payload(draft: CitationDraft) -> Dict[str, Any]:
    resolution = draft.resolution
    return {
        "text": draft.citation.text,
        "html": draft.citation.html,
        "style": draft.style.value,
        "source": resolution.source.value,
        "stage": resolution.stage.value,
        "failure": resolution.failure.value if resolution.failure else None,
        "message": resolution.message,
        "meta": draft.metadata.to_dict(),
        "offers_ai_redo": draft.offers_ai_redo,
    }


@app.get("/proxy", response_class=PlainTextResponse)
async def proxy(url: str = Query(..., min_length=1)) -> PlainTextResponse:
    """Same-origin page proxy used by the second resolution stage."""

    try:
        parsed = urlparse(url)
    except ValueError:
        parsed = None
    if parsed is None or parsed.scheme.lower() not in PROXY_SCHEMES or not parsed.netloc:
        raise HTTPException(status_code=400, detail="Only absolute http(s) URLs can be proxied")
    settings = get_settings()
    try:
        body = await http_get(url, settings.request_timeout, {"Accept": HTML_ACCEPT})
    except NetworkFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return PlainTextResponse(body, media_type="text/html")


@app.post("/api/resolve")
async def resolve(
    request: ResolveRequest, citations: CitationApp = Depends(get_citation_app)
) -> Dict[str, Any]:
    draft = await citations.cite_url(request.url, request.style)
    return _draft_payload(draft)


@app.post("/api/format")
async def format_citation(
    request: FormatRequest, citations: CitationApp = Depends(get_citation_app)
) -> Dict[str, str]:
    meta = request.meta.to_metadata()
    result = citations.formatter.format(meta, request.style)
    return {"text": result.text, "html": result.html}


@app.get("/api/citations")
async def list_saved(citations: CitationApp = Depends(get_citation_app)) -> List[CitationRecord]:
    return citations.list_citations()


@app.post("/api/citations")
async def save_citation(
    request: SaveRequest, citations: CitationApp = Depends(get_citation_app)
) -> CitationRecord:
    try:
        return citations.save(request.meta.to_metadata(), request.style, record_id=request.id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Citation not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/api/citations/{citation_id}/redo")
async def redo_citation(
    citation_id: int, citations: CitationApp = Depends(get_citation_app)
) -> Dict[str, Any]:
    try:
        record, resolution = await citations.redo_with_ai(citation_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Citation not found") from exc
    return {
        "citation": record.model_dump(mode="json"),
        "refreshed": not resolution.needs_manual,
        "message": resolution.message,
    }


@app.delete("/api/citations/{citation_id}", status_code=204)
async def delete_saved(citation_id: int, citations: CitationApp = Depends(get_citation_app)) -> None:
    try:
        citations.delete(citation_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Citation not found") from exc


def main() -> None:
    """Run the FastAPI app using uvicorn."""

    import uvicorn

    uvicorn.run("simplecite.web:app", host="0.0.0.0", port=8000, reload=False)


__all__ = ["app", "main", "get_citation_app"]
