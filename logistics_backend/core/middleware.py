# logistics_backend/core/middleware.py
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from logistics_backend.core.exceptions import LogisticsError
from logistics_backend.shared.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


def setup_middleware(app: FastAPI):
    """Configure all middleware and error handlers for the application"""

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure properly for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.4f}s"
        )

        return response

    @app.exception_handler(LogisticsError)
    async def logistics_error_handler(request: Request, exc: LogisticsError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
        body = ErrorResponse(
            message=exc.message,
            error_code=exc.error_code,
            details=exc.details or None
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(mode="json"),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg"),
                "type": error.get("type"),
            }
            for error in exc.errors()
        ]
        body = ErrorResponse(
            message="Validation errors",
            error_code="validation_error",
            details={"errors": errors}
        )
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))
