from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gallery.api.routes import apps
from gallery.config import settings
from gallery.models.schemas import ServiceHealthResponse
from gallery.services.database import AppStoreError, PostgresAppStore
from gallery.services.health import HealthAggregator
from gallery.services.logger import log_event, logger
from gallery.services.screenshot_cache import ScreenshotCache
from gallery.tools.probe import build_probe_client
from gallery.tools.screenshot import build_screenshot_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    store = PostgresAppStore()
    if store.is_configured():
        await store.init_schema()
    probe_client = build_probe_client()
    screenshot_client = build_screenshot_client()

    app.state.app_store = store
    app.state.health_aggregator = HealthAggregator(store, http_client=probe_client)
    app.state.screenshot_cache = ScreenshotCache(http_client=screenshot_client)
    log_event("startup", "Gallery service started", database=store.is_configured())
    yield
    # Shutdown
    await probe_client.aclose()
    await screenshot_client.aclose()
    await store.close()


app = FastAPI(
    title="Gallery",
    description="App gallery listing, health checks and screenshot proxy",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(apps.router)


@app.exception_handler(AppStoreError)
async def app_store_error_handler(request: Request, exc: AppStoreError):
    logger.error(f"App store failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "App store unavailable"})


@app.get("/api/health", response_model=ServiceHealthResponse)
async def health():
    return ServiceHealthResponse(status="ok", service="gallery")
