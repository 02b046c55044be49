"""
Repository layer for data access operations.
"""

from listing_api.repositories.base import BaseRepository
from listing_api.repositories.user import UserRepository
from listing_api.repositories.flat import FlatRepository
from listing_api.repositories.content import ProductRepository, QuestionRepository, InfoCardRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "FlatRepository",
    "ProductRepository",
    "QuestionRepository",
    "InfoCardRepository",
]
