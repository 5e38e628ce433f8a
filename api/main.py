from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import db
from core.log import configure_logging
from core.settings import Settings
from migrations import router as migrations_router
from queries import loader
from queries import router as queries_router


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    # Endpoint definitions are read once; handlers only ever read them.
    endpoints = loader.load_endpoint_definitions(
        settings.endpoints_config_path,
        strict=settings.strict_endpoint_config,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Open the database once per process.
        await app.state.database.open()
        try:
            yield
        finally:
            await app.state.database.close()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.endpoints = endpoints
    app.state.database = db.Database(settings.database_url, base_dir=settings.content_root)

    # Allow the manual test console's dev server to call this API from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(migrations_router.router, tags=["migrations"])
    app.include_router(queries_router.build_router(endpoints), tags=["queries"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "config-driven query api", "endpoints": len(endpoints)}

    return app


app = create_app()
