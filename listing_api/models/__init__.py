"""
Database models for the flat listing API.
"""

from listing_api.models.user import User, UserFlat
from listing_api.models.flat import Flat, FlatImage, Currency, StorageBackend, DEFAULT_CURRENCY
from listing_api.models.product import Product
from listing_api.models.question import (
    Question,
    QuestionTranslation,
    LanguageId,
    LANGUAGE_CODES,
    LANGUAGE_TIPS,
    SUPPORTED_LANGUAGE_IDS,
)
from listing_api.models.info_card import InfoCard

__all__ = [
    "User",
    "UserFlat",
    "Flat",
    "FlatImage",
    "Currency",
    "StorageBackend",
    "DEFAULT_CURRENCY",
    "Product",
    "Question",
    "QuestionTranslation",
    "LanguageId",
    "LANGUAGE_CODES",
    "LANGUAGE_TIPS",
    "SUPPORTED_LANGUAGE_IDS",
    "InfoCard",
]
