# deploy_tracker/main.py
import csv
import io
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from deploy_tracker.aggregator import Aggregator
from deploy_tracker.auth import (
    IdentityProvider,
    LocalIdentityProvider,
    ProxyHeaderIdentityProvider,
    is_authorized,
)
from deploy_tracker.badge import badge_svg, button_svg
from deploy_tracker.cache import ReputationCache, SQLiteTTLCache
from deploy_tracker.config import Settings
from deploy_tracker.errors import BadRequest, Forbidden, TrackerError, Unconfigured
from deploy_tracker.ingest import build_event
from deploy_tracker.models import Identity, RepoBreakdown, RepoMetrics, RepoSummary
from deploy_tracker.reputation import ReputationClient
from deploy_tracker.store import EventStore

logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(levelname)s - %(message)s',
                    datefmt='%Y-%m-%d %H:%M:%S')

SVG_MEDIA_TYPE = "image/svg+xml"
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[EventStore] = None,
    cache: Optional[ReputationCache] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    identity: Optional[IdentityProvider] = None,
) -> FastAPI:
    """Build the tracker application with every component constructed up front.

    Anything not passed in is built from ``settings``. With no database path
    configured the store is left unset and data endpoints answer 500.
    """
    settings = settings or Settings.from_env()
    if store is None and settings.db_path:
        store = EventStore(settings.db_path)
    if cache is None and settings.db_path:
        cache = SQLiteTTLCache(settings.db_path)
    http_client = http_client or httpx.AsyncClient(timeout=settings.github_stats_timeout)
    reputation = ReputationClient(
        http_client,
        api_key=settings.github_stats_api_key,
        base_url=settings.github_stats_url,
        cache=cache,
        ttl=settings.reputation_cache_ttl,
    )
    if identity is None:
        identity = LocalIdentityProvider() if settings.local else ProxyHeaderIdentityProvider()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await http_client.aclose()

    app = FastAPI(title="Deployment Tracker", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.reputation = reputation
    app.state.aggregator = Aggregator(store, reputation) if store is not None else None
    app.state.identity = identity

    app.add_exception_handler(TrackerError, tracker_error_handler)
    register_routes(app)
    logging.info(f"Deployment tracker configured (local={settings.local}, database={settings.db_path})")
    return app


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    if exc.status_code >= 500:
        logging.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


# --- Dependencies ---

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> EventStore:
    store = request.app.state.store
    if store is None:
        raise Unconfigured("no event store bound")
    return store


def get_aggregator(request: Request) -> Aggregator:
    aggregator = request.app.state.aggregator
    if aggregator is None:
        raise Unconfigured("no event store bound")
    return aggregator


def get_reputation(request: Request) -> ReputationClient:
    return request.app.state.reputation


def require_identity(request: Request, settings: Settings = Depends(get_settings)) -> Identity:
    identity = request.app.state.identity.identify(request)
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    if not settings.local and not is_authorized(identity.emails, settings.authorized_email_suffix):
        raise HTTPException(status_code=403, detail="You are not authorized to use this app")
    return identity


def check_api_key(apiKey: Optional[str] = Query(None), settings: Settings = Depends(get_settings)) -> None:
    if settings.local:
        return
    if apiKey is None:
        raise Forbidden("missing api key", public_message="A query string parameter apiKey must be set")
    if apiKey != settings.api_key:
        raise Forbidden("wrong api key", public_message="Invalid api key")


async def parse_payload(request: Request) -> Optional[Any]:
    """Decode an ingest body as JSON or form data according to its Content-Type.

    An empty body yields ``None``; a body in any other encoding is rejected.
    """
    body = await request.body()
    if not body.strip():
        return None
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type == "application/json" or content_type.endswith("+json"):
        try:
            return json.loads(body)
        except ValueError as e:
            raise BadRequest(f"malformed JSON body: {e}") from e
    if content_type in FORM_CONTENT_TYPES:
        return dict(await request.form())
    raise BadRequest(f"unsupported content type: {content_type or 'none'}")


def protocol_and_host(request: Request) -> str:
    return str(request.base_url).rstrip("/")


# --- Routes ---

def register_routes(app: FastAPI) -> None:

    async def track(payload, store: EventStore):
        event = build_event(payload)
        store.insert(event)
        logging.info(f"TRACKED: {event.repository_url} | {event.application_name}")
        return JSONResponse(status_code=201, content={"ok": True})

    @app.post("/api/v1/track", status_code=201)
    async def track_api(request: Request, store: EventStore = Depends(get_store)):
        return await track(await parse_payload(request), store)

    @app.post("/", status_code=201)
    async def track_root(request: Request, store: EventStore = Depends(get_store)):
        return await track(await parse_payload(request), store)

    @app.get("/stats", response_model=List[RepoSummary])
    async def stats(agg: Aggregator = Depends(get_aggregator), _: Identity = Depends(require_identity)):
        return await agg.overview()

    @app.get("/stats.csv")
    async def stats_csv(agg: Aggregator = Depends(get_aggregator), _: Identity = Depends(require_identity)):
        buffer = io.StringIO()
        csv.writer(buffer).writerows(agg.csv_rows())
        return Response(content=buffer.getvalue(), media_type="text/csv")

    @app.get("/repos", response_model=List[Optional[str]], dependencies=[Depends(check_api_key)])
    async def repos(agg: Aggregator = Depends(get_aggregator)):
        return agg.distinct_urls()

    @app.get("/stats/{url_hash}", response_model=RepoBreakdown)
    async def repo_stats(url_hash: str, request: Request,
                         agg: Aggregator = Depends(get_aggregator),
                         _: Identity = Depends(require_identity)):
        host = protocol_and_host(request)
        return RepoBreakdown(protocol_and_host=host, apps=agg.repo_breakdown(url_hash, host))

    @app.get("/stats/{url_hash}/metrics.json", response_model=RepoMetrics)
    async def repo_metrics(url_hash: str, agg: Aggregator = Depends(get_aggregator)):
        return RepoMetrics(url_hash=url_hash, count=agg.repo_count(url_hash))

    @app.get("/stats/{url_hash}/badge.svg")
    async def repo_badge(url_hash: str, agg: Aggregator = Depends(get_aggregator)):
        return Response(content=badge_svg(agg.repo_count(url_hash)), media_type=SVG_MEDIA_TYPE)

    @app.get("/stats/{url_hash}/button.svg")
    async def repo_button(url_hash: str, agg: Aggregator = Depends(get_aggregator)):
        return Response(content=button_svg(agg.repo_count(url_hash)), media_type=SVG_MEDIA_TYPE)

    @app.get("/api/v1/stats")
    async def reputation_stats(repo: str = Query(...),
                               reputation: ReputationClient = Depends(get_reputation),
                               _: Identity = Depends(require_identity)):
        if not reputation.configured:
            return {"error": "GITHUB_STATS_API_KEY is not set on the server"}
        return await reputation.fetch(repo)

    @app.get("/api/v1/whoami", response_model=Identity)
    async def whoami(identity: Identity = Depends(require_identity)):
        return identity

    @app.get("/robots.txt", response_class=PlainTextResponse)
    async def robots():
        return "User-agent: *\nDisallow: /"


app = create_app()
