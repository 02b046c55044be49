"""
InfoCard model: a numbered content card with per-language detail records.
"""

from sqlalchemy import Integer, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column
from listing_api.database import Base
from typing import Any, List, Optional


class InfoCard(Base):
    """
    Content card keyed by a unique numeric business id.
    Details are stored as a JSON list, one entry per language.
    """
    
    __tablename__ = "info_cards"
    
    info_card_id: Mapped[int] = mapped_column(
        Integer,
        unique=True,
        nullable=False,
        index=True,
        comment="Numeric business id - must be unique"
    )
    
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    
    image_data: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    
    category_ids: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)
    
    details: Mapped[List[dict]] = mapped_column(JSON, nullable=False, default=list)
    
    def __repr__(self) -> str:
        return f"<InfoCard(id={self.id}, info_card_id={self.info_card_id})>"
    
    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "info_card_id": self.info_card_id,
            "status": self.status,
            "image_data": self.image_data,
            "category_id_list": list(self.category_ids or []),
            "details": list(self.details or []),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
