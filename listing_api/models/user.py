"""
User model and the user/flat join record.
Users own a denormalized list of flat ids alongside UserFlat join rows.
"""

from sqlalchemy import String, Integer, Date, JSON, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from listing_api.database import Base
from datetime import date
from typing import List, Optional
import uuid


class User(Base):
    """
    Registered user account.
    The password hash never leaves this model through to_dict.
    """
    
    __tablename__ = "users"
    
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Lower-cased email address - must be unique"
    )
    
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password"
    )
    
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    
    age: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Age in whole years, 0-150"
    )
    
    birth_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    
    address: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Free text postal address"
    )
    
    # Denormalized flat references, kept in step with UserFlat rows
    flat_ids: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ids of flats assigned to this user"
    )
    
    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<User(id={self.id}, email={self.email})>"
    
    def has_flat(self, flat_id: uuid.UUID) -> bool:
        """Check whether a flat is already assigned to this user."""
        return str(flat_id) in (self.flat_ids or [])
    
    def to_dict(self, flats: Optional[list] = None) -> dict:
        """
        Convert user to dictionary (excluding sensitive data).
        
        Args:
            flats: Populated flat dictionaries; flat ids are returned when omitted
            
        Returns:
            Dictionary representation of user
        """
        return {
            "id": str(self.id),
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "age": self.age,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "address": self.address,
            "flats": flats if flats is not None else list(self.flat_ids or []),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class UserFlat(Base):
    """Join record linking a user to an assigned flat."""
    
    __tablename__ = "user_flats"
    __table_args__ = (
        UniqueConstraint("user_id", "flat_id", name="uq_user_flats_user_flat"),
    )
    
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    flat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("flats.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
