# habitflow/main.py
import logging
import time
from contextlib import asynccontextmanager
from functools import partial
from http import HTTPStatus

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, get_settings
from .database import Base
from .dependencies import open_stores
from .errors import HabitFlowError
from .routers import ai, analytics, entries, habits, health, settings as settings_router
from .services.ai import HabitAIService
from .services.reminders import ReminderService
from .stores.local import LocalStorage
from .utils.logger import setup_logger

logger = logging.getLogger(__name__)

IGNORED_LOCATION_PARTS = ("body", "query", "path")


def _load_settings(state):
    with open_stores(state) as stores:
        return stores.settings.load()


def _load_snapshot(state):
    with open_stores(state) as stores:
        return stores.snapshot()


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    logger.info("Application startup (backend=%s)", state.settings.backend)
    if state.settings.backend == "sql":
        Base.metadata.create_all(bind=state.engine)
        logger.info("Database tables created successfully")

    scheduler = None
    if state.settings.reminders_enabled:
        scheduler = AsyncIOScheduler()
        state.reminders = ReminderService(
            scheduler,
            settings_loader=partial(_load_settings, state),
            snapshot_loader=partial(_load_snapshot, state),
        )
        try:
            state.reminders.schedule()
        except HabitFlowError as e:
            logger.error("Failed to schedule reminders: %s", e.message)
        scheduler.start()
        logger.info("Scheduler started")

    yield

    logger.info("Application shutdown...")
    if scheduler is not None:
        scheduler.shutdown()
        logger.info("Scheduler shut down")


def _field_name(loc) -> str:
    return ".".join(str(part) for part in loc if part not in IGNORED_LOCATION_PARTS)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HabitFlowError)
    async def habitflow_error_handler(request: Request, exc: HabitFlowError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [{"field": _field_name(err.get("loc", ())), "message": err.get("msg", "")} for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"error": "Validation Error", "message": "Invalid request data", "details": details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail
        if exc.status_code == 404 and message == "Not Found":
            message = f"Route {request.url.path} not found"
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": HTTPStatus(exc.status_code).phrase, "message": message},
        )


def create_app(settings: Settings = None, engine=None, session_factory=None, local_storage=None,
               ai_service=None) -> FastAPI:
    settings = settings or get_settings()
    setup_logger(settings.log_level, settings.log_file)

    app = FastAPI(
        title="HabitFlow API",
        description="Habit tracking backend with streaks, completion analytics and AI suggestions",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.started_at = time.monotonic()
    if settings.backend == "sql":
        if engine is None:
            from .database import engine
        app.state.engine = engine
        app.state.session_factory = session_factory or sessionmaker(autocommit=False, autoflush=False, bind=engine)
    else:
        app.state.local_storage = local_storage or LocalStorage(settings.data_file)
    app.state.ai_service = ai_service or HabitAIService(settings.ai)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.server.frontend_url, "http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(habits.router)
    app.include_router(entries.router)
    app.include_router(analytics.router)
    app.include_router(settings_router.router)
    app.include_router(ai.router)
    app.include_router(health.router)

    @app.get("/api")
    def api_index():
        return {
            "message": "HabitFlow API",
            "version": __version__,
            "endpoints": {
                "health": "/api/health",
                "habits": "/api/habits",
                "entries": "/api/entries",
                "analytics": "/api/analytics",
                "settings": "/api/settings",
                "ai": "/api/ai",
            },
        }

    return app


app = create_app()
