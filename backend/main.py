import logging
from pathlib import Path
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import get_settings
from backend.database import init_db, set_db_path
from backend.dependencies import load_model_registry
from backend.services.model_registry import ModelConfigError
from backend.routers import health, llm_models, auth, costs, usage, dashboard

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    # Ensure data directories exist
    db_path = Path(settings.database_url)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    # Initialize database
    set_db_path(settings.database_url)
    await init_db()

    # Load the registry once so a bad config shows up in the startup log
    try:
        registry = load_model_registry()
        logger.info("Default model: %s", registry.default_model_id())
    except ModelConfigError as exc:
        logger.error("Model registry failed to load: %s", exc)

    logger.info("Usage ledger backend started")

    yield

    logger.info("Usage ledger backend shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Usage Ledger API",
        description="Token counting, pricing and usage dashboards for a multi-provider chat client",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Routers
    app.include_router(health.router)
    app.include_router(llm_models.router)
    app.include_router(auth.router)
    app.include_router(costs.router)
    app.include_router(usage.router)
    app.include_router(dashboard.router)

    # CORS: allowed origins from settings, with local dev defaults
    extra_origins = get_settings().allowed_origins
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    if extra_origins:
        origins.extend(
            o.strip()
            for o in extra_origins.split(",")
            if o.strip()
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()


@app.get("/")
async def read_root():
    return {
        "status": "ok",
        "message": "Usage ledger backend is running",
        "docs": "/docs",
    }
