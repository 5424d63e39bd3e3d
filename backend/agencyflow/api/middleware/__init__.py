"""
API Middleware Module

Modules:
    - correlation: Request correlation ID middleware
    - error_handlers: Domain error taxonomy mapped to HTTP responses
"""

from .correlation import CorrelationIdMiddleware
from .error_handlers import register_error_handlers

__all__ = ["CorrelationIdMiddleware", "register_error_handlers"]
