"""
FastAPI application for the tab grouper backend.

This server provides endpoints for:
- Organizing a window's tabs into native tab groups
- Clearing cached categorizations and embeddings
- Health checks

The extension posts a snapshot of its tabs and groups; the server replays the
organize pass against an in-memory copy and returns the group operations the
extension has to apply.
"""

from contextlib import asynccontextmanager
from datetime import datetime, UTC
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tab_grouper.config import get_logger, get_settings
from tab_grouper.agents.organizer import TabOrganizer
from tab_grouper.agents.providers import LLMProvider, OpenAIProvider
from tab_grouper.browser.memory import InMemoryBrowser
from tab_grouper.browser.models import TabDescriptor, TabGroup
from tab_grouper.storage.cache import CacheStore, create_cache_store
from tab_grouper.server.models import (
    CacheClearResponse,
    ClusterResponse,
    HealthResponse,
    TabsOrganizeRequest,
    TabsOrganizeResponse,
)

logger = get_logger(__name__)


# ============================================================================
# Global State
# ============================================================================

# Cache and provider outlive a single request; browsers are per request
_cache_store: CacheStore | None = None
_provider: LLMProvider | None = None


def get_cache_store() -> CacheStore:
    """Get or create the global cache store."""
    global _cache_store
    if _cache_store is None:
        _cache_store = create_cache_store(get_settings().cache_db_path)
    return _cache_store


def get_provider() -> LLMProvider:
    """Get or create the global OpenAI provider."""
    global _provider
    if _provider is None:
        settings = get_settings()
        _provider = OpenAIProvider(
            embedding_model=settings.openai_embedding_model,
            timeout=settings.request_timeout,
            base_url=settings.openai_base_url,
        )
    return _provider


def get_organizer(browser: InMemoryBrowser, categories: list[str] | None = None) -> TabOrganizer:
    """Create an organizer bound to a request's browser snapshot."""
    settings = get_settings()
    if categories is not None:
        settings = settings.model_copy(update={"categories": categories})
    return TabOrganizer(browser, get_provider(), get_cache_store(), settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Start from a clean cache, like a freshly installed extension
    get_cache_store().clear()
    logger.info("Cache cleared on startup")
    yield
    if isinstance(_provider, OpenAIProvider):
        await _provider.close()


# ============================================================================
# FastAPI App Initialization
# ============================================================================

app = FastAPI(
    title="Tab Grouper API",
    description="Categorizes browser tabs and organizes them into native tab groups",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for browser extension
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "chrome-extension://*",
        "http://localhost:*",
        "https://localhost:*",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# API Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
        api_key_configured=bool(get_settings().openai_api_key),
    )


@app.post("/api/tabs/organize", response_model=TabsOrganizeResponse)
async def organize_tabs(request: TabsOrganizeRequest):
    """
    Organize a snapshot of browser tabs into native tab groups.

    This endpoint:
    1. Seeds an in-memory browser with the posted tabs and groups
    2. Categorizes each candidate tab (embeddings first, LLM fallback)
    3. Places categorized tabs into matching groups or creates new ones
    4. Clusters and labels the tabs that fit no category

    Args:
        request: Tabs, existing groups and optional category override

    Returns:
        Group operations to apply, in order, plus per-tab outcomes
    """
    tabs = [TabDescriptor(**tab.model_dump()) for tab in request.tabs]
    groups = [TabGroup(**group.model_dump()) for group in request.groups]
    browser = InMemoryBrowser(tabs=tabs, groups=groups, window_types=request.window_types)

    organizer = get_organizer(browser, request.categories)

    candidates = [tab for tab in tabs if tab.group_id is None] if request.ungrouped_only else tabs
    logger.info(f"Organizing {len(candidates)} of {len(tabs)} tabs")

    result = await organizer.organize_tabs(candidates)

    return TabsOrganizeResponse(
        status="success",
        operations=browser.operations,
        placed_tab_ids=result.placed_tab_ids,
        ungrouped_tab_ids=result.ungrouped_tab_ids,
        leftover_tab_ids=result.leftover_tab_ids,
        skipped_tab_ids=result.skipped_tab_ids,
        clusters=[
            ClusterResponse(
                title=cluster.title,
                tab_ids=cluster.get_tab_ids(),
                grouped=cluster.tab_count > 1,
            )
            for cluster in result.clusters
        ],
        clustering_skipped=result.clustering_skipped,
        timestamp=result.timestamp.isoformat(),
    )


@app.post("/api/cache/clear", response_model=CacheClearResponse)
async def clear_cache():
    """Clear cached categories, embeddings and the leftover snapshot."""
    get_cache_store().clear()
    logger.info("Cache cleared via API")
    return CacheClearResponse(
        status="cleared",
        timestamp=datetime.now(UTC).isoformat(),
    )
