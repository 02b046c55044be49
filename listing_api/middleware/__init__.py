"""
Middleware package for the Flat Listing API.
"""

from .validation import ValidationMiddleware

__all__ = ["ValidationMiddleware"]
