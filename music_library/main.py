import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from music_library.core.config import settings
from music_library.core.errors import AppError, ConfigurationError, UpstreamError
from music_library.core.logging_config import setup_logging
from music_library.db.session import dispose_engine, get_engine, init_engine
from music_library.api.routes import router as health_router
from music_library.api.auth import router as auth_router
from music_library.api.user import router as user_router
from music_library.api.shelves import router as shelves_router
from music_library.api.friends import router as friends_router
from music_library.api.interactions import router as interactions_router
from music_library.api.spotify import router as spotify_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- startup -----------------------------------------------------------
    setup_logging(settings.service_name)
    settings.check_startup()
    if get_engine() is None:
        init_engine()
    logger.info("%s started (env=%s)", settings.service_name, settings.env)

    yield

    # ---- shutdown ----------------------------------------------------------
    dispose_engine()


app = FastAPI(title="music-library", lifespan=lifespan)

# --- CORS setup --------------------------------------------------------------
# Override with ALLOWED_ORIGINS (comma-separated).
default_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.allowed_origins:
    origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
else:
    origins = default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,  # the session token also travels as a cookie
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
    max_age=86400,
)


# --- errors ------------------------------------------------------------------

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, (UpstreamError, ConfigurationError)):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies, path or query values: 400 in the same envelope as ValidationError."""
    if request.url.path.endswith("/order"):
        return JSONResponse({"error": "Invalid data for reordering"}, status_code=400)
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", message)
    return JSONResponse({"error": message}, status_code=400)


# Routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(user_router)
app.include_router(shelves_router)
app.include_router(friends_router)
app.include_router(interactions_router)
app.include_router(spotify_router)
