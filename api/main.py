from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import asyncpg
import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import config, db
from inscriptions import router as inscriptions_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: config.Settings = app.state.settings
    params = config.resolve_connection_params(settings)
    # One pool per process; routes get it through `db.get_pool`.
    app.state.pool = await db.create_pool(
        params,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        command_timeout=settings.db_command_timeout,
    )
    try:
        yield
    finally:
        await db.close_pool(app.state.pool)
        app.state.pool = None


def create_app(settings: config.Settings | None = None) -> FastAPI:
    settings = settings or config.load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    app = FastAPI(title="inscriptions-rpc", lifespan=lifespan)
    app.state.settings = settings
    app.state.pool = None

    origins = settings.cors_origin_list()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET"],
            allow_headers=["*"],
        )

    app.include_router(inscriptions_router.router, tags=["inscriptions"])

    @app.get("/health")
    async def health(pool: asyncpg.Pool = Depends(db.get_pool)) -> dict:
        # A dead store surfaces as a 500 from the query.
        await db.fetch_one(pool, "SELECT 1 AS ok")
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "inscriptions rpc"}

    return app


app = create_app()


def run() -> None:
    settings: config.Settings = app.state.settings
    logger.info("Inscriptions RPC listening on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
