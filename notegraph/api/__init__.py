from contextlib import asynccontextmanager
from typing import Callable, Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notegraph.api.endpoints import get_endpoints_router
from notegraph.service import KnowledgeService
from notegraph.suggestions.sweeper import BackgroundSweeper


def create_app(
    *,
    service: KnowledgeService,
    sweeper: BackgroundSweeper | None = None,
    shutdown_hooks: Iterable[Callable[[], None]] = (),
) -> FastAPI:
    """Create FastAPI app."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if sweeper is not None:
            sweeper.start()
        yield
        if sweeper is not None:
            await sweeper.stop()
        for hook in shutdown_hooks:
            hook()

    app = FastAPI(lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router=get_endpoints_router(service=service))

    return app
