"""FastAPI entrypoint for the Lumina backend.

Run with ``uvicorn backend.app.main:app --port 3000``.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import entries, health, insights
from .config import load_settings
from .infra.logging import configure_logging


def create_app() -> FastAPI:
    """Instantiate the FastAPI app and register routers."""

    settings = load_settings()
    configure_logging(settings)
    application = FastAPI(title="Lumina API", version="0.1.0")
    allowed_origins = {
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    }
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(allowed_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for router in (
        health.router,
        entries.router,
        insights.router,
    ):
        application.include_router(router)
    return application


app = create_app()
