import os
import sys
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Ensure local imports resolve
sys.path.append(os.path.dirname(__file__))

# Core
from core.config import settings
from core.config_validator import validate_config_on_startup
from core.errors import EmailApiError
from core.logging_config import logger

# -------------------------------------------------
# Routers
# -------------------------------------------------
from routers.emails import router as emails_router
from routers.email_logs import router as email_logs_router
from routers.health import router as health_router


# -------------------------------------------------
# Create the Application
# -------------------------------------------------
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Ross AI Email API: templated client, invoice and general email",
    )

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------
    # Startup logging
    # -------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        logger.info("🚀 Starting Ross AI Email API")
        validate_config_on_startup(settings)
        for route in app.routes:
            methods = ",".join(getattr(route, "methods", None) or [])
            logger.info(f"➡️ {methods:10s} {getattr(route, 'path', '')}")

    # -------------------------------------------------
    # Error handling
    # Every error body is {"success": false, "message": ...}
    # -------------------------------------------------
    @app.exception_handler(EmailApiError)
    async def handle_email_api_error(request: Request, exc: EmailApiError):
        if exc.status_code >= 500:
            logger.error(f"HTTP {exc.status_code} at {request.url}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or "request",
                "message": err.get("msg", "Invalid value"),
                "code": "INVALID_VALUE",
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Validation failed", "errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (401, 403, 500):
            logger.warning(
                f"HTTP {exc.status_code} at {request.url}: {exc.detail}"
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.error("Unhandled error at %s", request.url, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"},
        )

    # -------------------------------------------------
    # Register Routers
    # -------------------------------------------------
    app.include_router(emails_router)
    app.include_router(email_logs_router)
    app.include_router(health_router)

    return app


# Create the global FastAPI instance
app = create_app()
