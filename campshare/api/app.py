from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import platform
import time

from campshare.api import admin, campgrounds, reviews, users
from campshare.api.deps import make_signer
from campshare.api.ratelimit import API_LIMIT_MESSAGE, RateLimiter
from campshare.config import load_settings
from campshare.db.database import Database
from campshare.geocoding.nominatim import NominatimGeocoder
from campshare.media.storage import LocalMediaStorage
from campshare.services.errors import ServiceError

logger = logging.getLogger(__name__)

APP_NAME = "campshare"
API_VERSION = "1.0.0"
UNLIMITED_PATHS = ("/health",)
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}


def error_response(status_code, message):
    return JSONResponse(status_code=status_code, content={"error": message, "statusCode": status_code})


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for detail in exc.errors():
        # Drop the "body"/"query"/"path" prefix from the location
        loc = [str(part) for part in detail.get("loc", ())[1:]]
        messages.append(f"{'.'.join(loc)}: {detail['msg']}" if loc else detail["msg"])
    return ", ".join(messages) or "Invalid request"


def register_error_handlers(app: FastAPI):
    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return error_response(500, "Something went wrong")


def create_app(settings=None, database=None, geocoder=None, media=None) -> FastAPI:
    """
    Build the API.

    Collaborators not passed in are constructed from settings; settings default to the environment.
    """
    if settings is None:
        settings = load_settings()
    if database is None:
        database = Database(settings.database_url)
    database.create_tables()

    if geocoder is None and settings.geocoding_enabled:
        geocoder = NominatimGeocoder(base_url=settings.nominatim_url, user_agent=settings.geocoder_user_agent)
    if media is None:
        media = LocalMediaStorage(settings.media_root, settings.media_url)

    app = FastAPI(
        title="CampShare API",
        description="Share campgrounds, photos and reviews",
        version=API_VERSION
    )
    app.state.settings = settings
    app.state.database = database
    app.state.geocoder = geocoder
    app.state.media = media
    app.state.signer = make_signer(settings.secret)
    app.state.started_at = time.time()

    app.state.rate_limiter = RateLimiter(
        settings.rate_limit, settings.auth_rate_limit, enabled=settings.rate_limiting_enabled
    )

    @app.middleware("http")
    async def limit_requests(request: Request, call_next):
        path = request.url.path
        if path not in UNLIMITED_PATHS and not path.startswith(settings.media_url):
            if not app.state.rate_limiter.hit_api(request):
                return error_response(429, API_LIMIT_MESSAGE)
        return await call_next(request)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = (time.time() - start_time) * 1000
        logger.info(f"{request.method} {request.url.path} {response.status_code} {duration:.1f}ms")
        return response

    register_error_handlers(app)

    @app.get("/")
    def read_root():
        return {"message": "Welcome to the CampShare API"}

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "uptime": round(time.time() - app.state.started_at, 3),
            "timestamp": int(time.time() * 1000)
        }

    @app.get("/version")
    def version():
        return {
            "name": APP_NAME,
            "version": API_VERSION,
            "python": platform.python_version(),
            "env": settings.environment
        }

    app.include_router(users.router)
    app.include_router(campgrounds.router)
    app.include_router(reviews.router)
    app.include_router(admin.router)

    if isinstance(media, LocalMediaStorage):
        app.mount(settings.media_url, StaticFiles(directory=media.root), name="media")

    return app
