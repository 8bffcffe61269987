from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import Settings, settings as default_settings
from app.core.errors import BookingValidationError, MalformedRequestError
from app.core.logging import setup_logging
from app.core.security_headers import SecurityHeadersMiddleware
from app.api.middleware import AbuseGuardMiddleware, OriginAllowlistMiddleware, RequestLogMiddleware
from app.api.v1.api import api_router
from app.throttle.guard import AbuseGuard
from app.throttle.store import build_store
from app.validation.engine import BookingValidator

def create_app(settings: Settings = default_settings, guard: AbuseGuard | None = None) -> FastAPI:
    app = FastAPI(title=settings.APP_NAME)

    if guard is None:
        guard = AbuseGuard.from_settings(settings, build_store(settings.RATE_LIMIT_STORE, settings.REDIS_URL))
    app.state.guard = guard
    app.state.validator = BookingValidator(min_age=settings.MIN_AGE_YEARS, max_age=settings.MAX_AGE_YEARS)

    # Added innermost first: headers -> request log (and 500s) -> CORS -> origin check -> abuse guard -> routes
    app.add_middleware(AbuseGuardMiddleware, guard=guard, max_body_bytes=settings.MAX_BODY_BYTES)
    app.add_middleware(OriginAllowlistMiddleware, allowed_origins=settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.ENV == "production")

    @app.exception_handler(BookingValidationError)
    async def _validation_failed(request: Request, exc: BookingValidationError):
        return JSONResponse(status_code=422, content={"errors": exc.violations.as_dict()})

    @app.exception_handler(RequestValidationError)
    @app.exception_handler(MalformedRequestError)
    async def _malformed(request: Request, exc: Exception):
        return JSONResponse(status_code=400, content={"error": "Malformed request"})

    app.include_router(api_router)

    @app.get("/")
    def root():
        return {"message": "API is live!"}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


setup_logging(default_settings.LOG_LEVEL)
app = create_app()
