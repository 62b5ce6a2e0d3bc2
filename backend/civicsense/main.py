
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from civicsense.core.config import settings
from civicsense.core.exceptions import CivicSenseException
from civicsense.core.logging import setup_logging
from civicsense.routers import engine, health, rate_limits, reports, sla
from civicsense.services.escalation_scheduler import start_escalation_loop, stop_escalation_loop


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await start_escalation_loop()
        try:
            yield
        finally:
            await stop_escalation_loop()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(engine.router, prefix="/api/engine", tags=["engine"])
    app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
    app.include_router(sla.router, prefix="/api/sla", tags=["sla"])
    app.include_router(rate_limits.router, prefix="/api/rate-limits", tags=["rate-limits"])

    @app.exception_handler(CivicSenseException)
    async def handle_civicsense_exception(_: Request, exc: CivicSenseException) -> JSONResponse:
        headers = exc.headers if getattr(exc, "headers", None) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    return app


app = create_app()
