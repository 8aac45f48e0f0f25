"""
FastAPI application entrypoint for the Arena Discord identity service.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from arena_auth.api.routes import router as api_router
from arena_auth.core.config import get_settings
from arena_auth.core.logging import configure_logging
from arena_auth.dependencies import reset_dependencies
from arena_auth.services import IdentityContract


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    reset_dependencies()


def create_app(identity_contract: Optional[IdentityContract] = None) -> FastAPI:
    """Factory for the FastAPI application.

    ``identity_contract`` is the on-chain profile client; without one the
    callback skips chain sync and ``/identity`` answers 503.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Arena Discord Identity",
        version="0.1.0",
        description="Discord OAuth2 login, sessions and wallet identity linking.",
        lifespan=_lifespan,
    )
    app.state.identity_contract = identity_contract
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
