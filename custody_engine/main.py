from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from custody_engine import __version__
from custody_engine.api import create_api_router
from custody_engine.core.config import get_settings
from custody_engine.core.container import ApplicationContainer, get_container
from custody_engine.core.logging import configure_logging
from custody_engine.infrastructure.database import dispose_engine, init_db

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.debug)
    await init_db()
    if getattr(app.state, "container", None) is None:
        app.state.container = get_container()
    try:
        yield
    finally:
        await app.state.container.aclose()
        await dispose_engine()


def create_app(container: Optional[ApplicationContainer] = None) -> FastAPI:
    app = FastAPI(
        title=settings.project_name,
        description="Custodial wallet and token swap execution engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "custody_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.server.reload,
    )
