"""
Flat model for apartment listings and its ordered image records.
"""

from sqlalchemy import String, Text, Integer, Float, Numeric, ForeignKey, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from listing_api.database import Base
from decimal import Decimal
import enum
import uuid
from typing import List, Optional


class Currency(str, enum.Enum):
    """Currencies a flat can be priced in."""
    GEL = "GEL"
    USD = "USD"
    EUR = "EUR"


DEFAULT_CURRENCY = Currency.GEL


class StorageBackend(str, enum.Enum):
    """Where the bytes of an image record live. Fixed at creation."""
    LOCAL = "local"
    S3 = "s3"


class Flat(Base):
    """
    Apartment listing with a structured address and an image gallery.
    """
    
    __tablename__ = "flats"
    
    square: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Floor area in square metres"
    )
    
    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        index=True
    )
    
    # Nullable so rows created before currencies existed keep matching GEL filters
    currency: Mapped[Optional[str]] = mapped_column(
        String(3),
        nullable=True,
        default=DEFAULT_CURRENCY.value,
        index=True
    )
    
    # Structured address
    street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    
    # Legacy free text location, superseded by street
    location: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Legacy single-string address, cleared by the backfill migration"
    )
    
    images: Mapped[List["FlatImage"]] = relationship(
        "FlatImage",
        back_populates="flat",
        cascade="all, delete-orphan",
        order_by="FlatImage.position",
        lazy="selectin"
    )
    
    def __repr__(self) -> str:
        return f"<Flat(id={self.id}, street={self.street}, price={self.price})>"
    
    @property
    def address(self) -> Optional[dict]:
        """Structured address, or None when no component is stored."""
        if not any(v is not None for v in (self.street, self.city, self.state, self.zip)):
            return None
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
        }
    
    def next_image_position(self) -> int:
        return max((img.position for img in self.images), default=-1) + 1
    
    def to_dict(self) -> dict:
        """
        Convert flat to dictionary with its images in gallery order.
        """
        return {
            "id": str(self.id),
            "square": self.square,
            "price": float(self.price) if self.price is not None else None,
            "currency": self.currency,
            "address": self.address,
            "images": [image.to_dict() for image in self.images],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class FlatImage(Base):
    """
    A stored image belonging to a flat.
    The storage tag decides which deletion path runs when the image is removed.
    """
    
    __tablename__ = "flat_images"
    
    flat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("flats.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Order within the flat's gallery"
    )
    
    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    
    storage: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Storage backend tag: local or s3"
    )
    
    # Local file path relative to the upload dir, or the object key in the bucket
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    bucket: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    
    flat: Mapped["Flat"] = relationship("Flat", back_populates="images")
    
    def __repr__(self) -> str:
        return f"<FlatImage(id={self.id}, flat_id={self.flat_id}, storage={self.storage})>"
    
    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "url": self.url,
            "filename": self.filename,
            "size": self.size,
            "content_type": self.content_type,
            "storage": self.storage,
            "path": self.path,
            "bucket": self.bucket,
            "created_at": self.created_at.isoformat(),
        }


# Gallery lookups are always by flat in position order
flat_images_position_index = Index(
    "idx_flat_images_flat_position",
    FlatImage.flat_id,
    FlatImage.position,
)
