from fastapi import FastAPI
from gitdigest.core.config import settings
from gitdigest.core.logging import setup_logging
from gitdigest.core.oauth_config import OAuthConfigLoader

from gitdigest.api.v1.health import router as health_router
from gitdigest.api.v1.ingest import router as ingest_router
from gitdigest.api.v1.oauth import router as oauth_router

logger = setup_logging()

def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME)
    # fetched lazily on first /oauth/config, then reused for the process
    app.state.oauth_config = OAuthConfigLoader()

    @app.on_event("startup")
    async def _startup():
        logger.info(f"Acquisition strategy: {settings.ACQUISITION_STRATEGY}")

    app.include_router(health_router, prefix="/api/v1")
    app.include_router(ingest_router, prefix="/api/v1")
    app.include_router(oauth_router, prefix="/api/v1")

    return app

app = create_app()
