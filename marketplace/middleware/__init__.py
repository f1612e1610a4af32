"""
Middleware package for the Real Estate Marketplace API.
"""

from .request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
