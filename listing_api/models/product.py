"""
Product catalog model.
"""

from sqlalchemy import String, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from listing_api.database import Base
from decimal import Decimal
from typing import Optional


class Product(Base):
    """A catalog product. Only the price is required."""
    
    __tablename__ = "products"
    
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    
    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        index=True
    )
    
    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "price": float(self.price),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
