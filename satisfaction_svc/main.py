import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import psycopg2
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from pydantic import ValidationError as SettingsError

from . import __version__
from .db import FeedbackStore
from .errors import ConflictError, StorageError, ValidationError
from .feedback import submit_feedback
from .logging_config import configure_logging
from .schemas import ErrorResponse, FeedbackSubmission, HealthResponse, StatsResponse, SubmitResponse
from .settings import Settings
from .stats import get_monthly_stats

MONTH_REQUIRED = 'month is required, e.g. 2026-01'

router = APIRouter(prefix='/api')


def get_store(request: Request) -> FeedbackStore:
    return request.app.state.store


# ---------------------------
# Endpoints
# ---------------------------
@router.get('/health', response_model=HealthResponse, response_model_exclude_none=True, summary='Database connectivity probe')
def health(store: FeedbackStore = Depends(get_store)):
    try:
        version = store.server_version()
    except (psycopg2.Error, RuntimeError) as e:
        logger.warning('Health check failed: {}', e)
        return JSONResponse(status_code=500, content={'ok': False, 'error': str(e).strip()})
    return HealthResponse(ok=True, version=version)


@router.post(
    '/feedback',
    response_model=SubmitResponse,
    summary='Submit a satisfaction survey',
    responses={400: {'model': ErrorResponse}, 409: {'model': ErrorResponse}, 500: {'model': ErrorResponse}},
)
def create_feedback(payload: FeedbackSubmission, store: FeedbackStore = Depends(get_store)):
    return submit_feedback(store, payload)


@router.get(
    '/stats',
    response_model=StatsResponse,
    summary='Monthly averages per project and action plan',
    responses={400: {'model': ErrorResponse}, 500: {'model': ErrorResponse}},
)
def monthly_stats(month: Optional[str] = Query(None, description='YYYY-MM'), store: FeedbackStore = Depends(get_store)):
    if not month:
        return JSONResponse(status_code=400, content={'error': MONTH_REQUIRED})
    return get_monthly_stats(store, month)


# ---------------------------
# Error mapping
# ---------------------------
def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={'error': exc.message})

    @app.exception_handler(ConflictError)
    async def _conflict(_: Request, exc: ConflictError):
        return JSONResponse(status_code=409, content={'error': exc.message})

    @app.exception_handler(StorageError)
    async def _storage(_: Request, exc: StorageError):
        return JSONResponse(status_code=500, content={'error': exc.message, 'details': exc.details})

    @app.exception_handler(RequestValidationError)
    async def _request_validation(_: Request, exc: RequestValidationError):
        errors = exc.errors()
        loc = [str(p) for p in errors[0].get('loc', ()) if p != 'body'] if errors else []
        msg = f'Invalid field: {".".join(loc)}' if loc else 'Invalid request body'
        return JSONResponse(status_code=400, content={'error': msg})


# ---------------------------
# App
# ---------------------------
def mount_frontend(app: FastAPI, settings: Settings) -> None:
    # Mounted last: "/" would otherwise shadow the API routes
    assets = Path(settings.ASSETS_DIR)
    if assets.is_dir():
        app.mount('/assets', StaticFiles(directory=assets), name='assets')
    else:
        logger.warning('Assets directory {} not found; /assets not served', assets)

    static = Path(settings.STATIC_DIR)
    if static.is_dir():
        app.mount('/', StaticFiles(directory=static, html=True), name='frontend')
    else:
        logger.warning('Static directory {} not found; frontend not served', static)


def create_app(settings: Optional[Settings] = None, store: Optional[FeedbackStore] = None) -> FastAPI:
    settings = settings or Settings()
    store = store or FeedbackStore(settings.DATABASE_URL, settings.DB_POOL_MIN, settings.DB_POOL_MAX)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Schema must be in place before any request is accepted
        try:
            store.open()
            store.init_schema()
        except Exception:
            logger.exception('Database initialization failed; not serving traffic')
            raise
        logger.info('{} ready', settings.SERVICE_NAME)
        yield
        store.close()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=__version__,
        docs_url='/docs',
        openapi_url='/openapi.json',
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=['*'],
        allow_headers=['*'],
    )
    register_error_handlers(app)
    app.include_router(router)
    mount_frontend(app, settings)
    return app


def run() -> None:
    try:
        settings = Settings()
    except SettingsError as e:
        configure_logging()
        if any(err.get('loc') == ('DATABASE_URL',) for err in e.errors()):
            logger.error('DATABASE_URL is missing. Set it in the environment or in .env')
        else:
            logger.error('Invalid configuration: {}', e)
        sys.exit(1)

    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    logger.info('Web + API listening on {}:{}', settings.HOST, settings.PORT)
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_config=None)
