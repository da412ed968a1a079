import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from archiver.backends import build_backend
from archiver.config import settings
from archiver.errors import ArchiveError, UnknownError
from archiver.routers import activity, auth, categories, dashboard, documents, maintenance, ws
from archiver.services.auth_service import SessionRegistry

logger = logging.getLogger("archiver")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.admin_password_hash:
        logger.warning("ARCHIVER_ADMIN_PASSWORD_HASH is not set; nobody can sign in.")
    app.state.backend = build_backend(settings)
    yield
    app.state.backend.close()
    app.state.sessions.clear()


def _archive_error_handler(request: Request, exc: ArchiveError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    message = "Internal Server Error" if isinstance(exc, UnknownError) else exc.message
    return JSONResponse(status_code=exc.status_code, content={"error": message})


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ArchiveError, _archive_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)


app = FastAPI(
    title="Archiver",
    description="Document archive administration API",
    version=VERSION,
    lifespan=lifespan,
)
app.state.sessions = SessionRegistry(settings.session_ttl_seconds)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(categories.router, prefix=settings.api_prefix)
app.include_router(documents.router, prefix=settings.api_prefix)
app.include_router(activity.router, prefix=settings.api_prefix)
app.include_router(dashboard.router, prefix=settings.api_prefix)
app.include_router(maintenance.router, prefix=settings.api_prefix)
app.include_router(ws.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}
