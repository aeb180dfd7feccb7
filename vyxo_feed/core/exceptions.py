"""
Global Exception Handlers

Feed service exceptions and their FastAPI handlers.
"""

from fastapi import Request
from fastapi.responses import JSONResponse


class FeedBackendException(Exception):
    """Base exception for feed service errors."""
    
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(FeedBackendException):
    """Resource not found."""
    
    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            status_code=404
        )


class FeedTimeoutError(FeedBackendException):
    """Feed source fan-out did not finish within the request budget."""
    
    def __init__(self, feed: str, timeout_seconds: float):
        super().__init__(
            message=f"{feed} feed timed out after {timeout_seconds:g}s",
            status_code=504
        )


async def feed_exception_handler(
    request: Request, 
    exc: FeedBackendException
) -> JSONResponse:
    """Handle FeedBackendException and return JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.message,
            "status_code": exc.status_code,
        }
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(FeedBackendException, feed_exception_handler)
