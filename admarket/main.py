import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from admarket import __version__
from admarket.database import init_db
from admarket.models import *  # noqa: F403

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: create tables, build the overlay host and the reward wallet
    await init_db()
    from admarket.config import settings
    from admarket.database import async_session
    from admarket.services.overlay_engine import build_overlay_engine
    from admarket.services.wallet_client import WalletClient

    app.state.overlay_engine = build_overlay_engine(async_session)
    app.state.wallet = WalletClient(
        base_url=settings.wallet_url,
        originator=settings.wallet_originator,
        private_key=settings.server_private_key,
    )
    logger.info(
        "Overlay ready: topics=%s lookup services=%s",
        list(app.state.overlay_engine.topic_managers),
        list(app.state.overlay_engine.lookup_services),
    )

    yield

    # Shutdown: close the wallet connection and dispose connection pool
    await app.state.wallet.aclose()

    from admarket.database import dispose_engine

    await dispose_engine()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


def create_app() -> FastAPI:
    app = FastAPI(
        title="Advertisement Overlay Marketplace",
        description="Fund video ad campaigns and reward viewers for quiz answers",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS configurable via CORS_ORIGINS env var
    from admarket.config import settings

    allowed_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    # Register REST routers
    from admarket.api import API_PREFIX, API_ROUTERS

    for router in API_ROUTERS:
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "name": "Advertisement Overlay Marketplace",
            "version": __version__,
            "docs": "/docs",
            "health": f"{API_PREFIX}/health",
        }

    return app


app = create_app()
