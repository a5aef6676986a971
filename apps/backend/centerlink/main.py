"""CenterLink FastAPI application entrypoint."""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from .api.centers import router as centers_router
from .api.events import router as events_router
from .api.messages import router as messages_router
from .api.realtime import router as realtime_router
from .api.ws import router as ws_router
from .core.service import RealtimeService
from .store.database import SessionFactory, dispose, init_db
from .store.registry import seed_centers
from .util.logs import configure_logging
from .util.settings import RealtimeSettings


def create_app(settings: Optional[RealtimeSettings] = None) -> FastAPI:
    app = FastAPI(title="CenterLink API", version="0.1.0")
    app.state.settings = settings

    @app.on_event("startup")
    async def _startup() -> None:
        resolved = app.state.settings or RealtimeSettings.from_env()
        app.state.settings = resolved
        configure_logging(resolved.log_level)
        init_db()
        with SessionFactory() as session:
            seed_centers(session)
            session.commit()
        app.state.realtime = RealtimeService(resolved)
        await app.state.realtime.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        realtime: Optional[RealtimeService] = getattr(app.state, "realtime", None)
        if realtime is not None:
            await realtime.stop()
            app.state.realtime = None
        dispose()

    app.include_router(centers_router, prefix="/api")
    app.include_router(messages_router, prefix="/api")
    app.include_router(events_router, prefix="/api")
    app.include_router(realtime_router, prefix="/api")
    app.include_router(ws_router, prefix="/api")

    @app.get("/healthz")
    def healthcheck() -> dict[str, str]:
        """Basic health endpoint for readiness checks."""
        return {"status": "ok"}

    return app


app = create_app()
