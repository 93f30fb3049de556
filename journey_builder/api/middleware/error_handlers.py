"""
Error handlers for FastAPI application.
"""

import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from journey_builder.core.logging import get_logger
from journey_builder.services.persistence.gateway import JourneyGatewayError
from journey_builder.utils.constants import ERROR_RESPONSES

logger = get_logger(__name__)


def _request_context(request: Request) -> dict:
    return {
        "request_id": getattr(request.state, "request_id", "unknown"),
        "path": str(request.url.path),
        "method": request.method,
    }


async def journey_gateway_exception_handler(
    request: Request, exc: JourneyGatewayError
) -> JSONResponse:
    """Handle storage service failures."""
    logger.error(
        f"Journey gateway error: {exc.operation} - {exc.message}",
        extra={
            "operation": exc.operation,
            "upstream_status": exc.status_code,
            **_request_context(request),
        }
    )

    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "error": "JOURNEY_GATEWAY_ERROR",
            "message": exc.message,
            "status": "error",
        }
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        f"HTTP exception: {exc.status_code} - {exc.detail}",
        extra={"status_code": exc.status_code, **_request_context(request)}
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": ERROR_RESPONSES.get(exc.status_code, "HTTP_ERROR"),
            "message": exc.detail,
            "status": "error",
        }
    )


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors."""
    logger.warning(
        "Request validation error",
        extra={"validation_errors": str(exc.errors()), **_request_context(request)}
    )

    formatted_errors = []
    for error in exc.errors():
        formatted_errors.append({
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "REQUEST_VALIDATION_ERROR",
            "message": "Invalid request data",
            "details": formatted_errors,
            "status": "error",
        }
    )


async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handle general exceptions."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__} - {str(exc)}",
        extra={
            "exception_type": type(exc).__name__,
            "traceback": traceback.format_exc(),
            **_request_context(request),
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "INTERNAL_SERVER_ERROR",
            "message": "An unexpected error occurred",
            "status": "error",
        }
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup all exception handlers for the application."""
    app.add_exception_handler(JourneyGatewayError, journey_gateway_exception_handler)

    # Framework exceptions
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    # Catch-all for unexpected exceptions
    app.add_exception_handler(Exception, general_exception_handler)
