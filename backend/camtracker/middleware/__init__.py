# backend/camtracker/middleware/__init__.py
"""
Middleware package for the FastAPI application.

Provides centralized error handling and image delivery telemetry.
"""

from .error_handler import ErrorHandlerMiddleware, register_exception_handlers
from .performance_middleware import PerformanceMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "PerformanceMiddleware",
    "register_exception_handlers",
]
