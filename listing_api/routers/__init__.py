"""
API route handlers for the Flat Listing API.
"""

from .auth import router as auth_router
from .info_cards import router as info_cards_router
from .users import router as users_router
from .flats import router as flats_router
from .products import router as products_router
from .questions import router as questions_router

__all__ = [
    "auth_router",
    "info_cards_router",
    "users_router",
    "flats_router",
    "products_router",
    "questions_router",
]
