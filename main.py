# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Co-Parent Scheduling Service
============================
Custody rotation patterns, visitation events and the merged family calendar.

Two overlap guards protect the schedule:
    rotations   ─► no two active rotations of a family share a date
    events      ─► no two visitation events of a child share an instant

Layers:
    controllers ─► services ─► repositories ─► SQLAlchemy Core

Port: 8000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coparent.controllers import (
    audit_controller,
    child_controller,
    family_controller,
    invitation_controller,
    rotation_controller,
    schedule_controller,
    swap_controller,
    system_controller,
    webhook_controller,
)
from coparent.core.config import settings
from coparent.core.database import engine
from coparent.core.errors import SchedulingError
from coparent.core.logging import get_logger
from coparent.middleware import MetricsMiddleware, RequestIDMiddleware
from coparent.models.tables import metadata

logger = get_logger(settings.SERVICE_NAME)


@asynccontextmanager
async def lifespan(application: FastAPI):
    if settings.CREATE_SCHEMA:
        metadata.create_all(engine)
        logger.info("Database schema ensured")
    logger.info("%s v%s started", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    yield
    engine.dispose()
    logger.info("%s stopped", settings.SERVICE_NAME)


app = FastAPI(
    title="Co-Parent Scheduler",
    description="Custody rotations, visitation events, swaps and the family calendar",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    content = exc.to_dict()
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        content["request_id"] = request_id
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500, content={"error": "internal_server_error", "detail": str(exc)}
    )


app.include_router(system_controller.router)
app.include_router(rotation_controller.router)
app.include_router(schedule_controller.router)
app.include_router(swap_controller.router)
app.include_router(family_controller.router)
app.include_router(child_controller.router)
app.include_router(invitation_controller.router)
app.include_router(audit_controller.router)
app.include_router(webhook_controller.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT)
