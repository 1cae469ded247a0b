from contextlib import asynccontextmanager
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from clockistry.core.config import get_settings
from clockistry.core.errors import error_body, install_error_handlers
from clockistry.core.logging import configure_logging
from clockistry.models import Client, Company, Project, Task, Team, TeamMember, TimeEntry, User  # noqa: F401
from clockistry.routers.auth import router as auth_router
from clockistry.routers.clients import router as clients_router
from clockistry.routers.companies import router as companies_router
from clockistry.routers.projects import router as projects_router
from clockistry.routers.tasks import options_router as task_options_router
from clockistry.routers.tasks import router as tasks_router
from clockistry.routers.teams import router as teams_router
from clockistry.routers.time_entries import router as time_entries_router
from clockistry.routers.users import router as users_router

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Clockistry starting", extra={"version": VERSION})
    yield


app = FastAPI(
    title="Clockistry",
    version=VERSION,
    lifespan=lifespan,
)

install_error_handlers(app)


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception", extra={"path": request.url.path})
        return JSONResponse(
            status_code=500,
            content=error_body("internal_error", "Internal Server Error"),
        )


app.include_router(auth_router)
app.include_router(companies_router)
app.include_router(time_entries_router)
app.include_router(projects_router)
app.include_router(clients_router)
app.include_router(users_router)
app.include_router(tasks_router)
app.include_router(task_options_router)
app.include_router(teams_router)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": VERSION,
    }


def run() -> None:
    """Console entry point: serve the app with uvicorn on $HOST:$PORT."""
    settings = get_settings()
    # Logging is configured by the lifespan; keep uvicorn from installing its own.
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
