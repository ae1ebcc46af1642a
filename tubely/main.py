from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from tubely.api.router import api_router
from tubely.core.config import Settings, get_settings
from tubely.core.db import init_models
from tubely.core.errors import register_exception_handlers
from tubely.core.logging import setup_logging
from tubely.core.middleware import BodySizeLimitMiddleware, RequestContextMiddleware
from tubely.platform.adapters.storage_local import ASSETS_MOUNT
from tubely.platform.provider_registry import ProviderRegistry


def create_app(settings: Settings | None = None, registry: ProviderRegistry | None = None) -> FastAPI:
    if settings is None:
        settings = get_settings()
    setup_logging(settings)

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.registry = registry or ProviderRegistry(settings)
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_UPLOAD_BYTES)
    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)

    @app.on_event("startup")
    async def on_startup():
        app.state.registry.asset_store().ensure_root()
        await init_models()

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    app.include_router(api_router, prefix=settings.API_PREFIX)
    app.mount(ASSETS_MOUNT, StaticFiles(directory=settings.ASSETS_ROOT, check_dir=False), name="assets")
    return app


app = create_app()
