"""
Template models
===============

Catalog of reusable portfolio layouts and the usage log behind
their download counter.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import String, Integer, DateTime, ForeignKey, Float, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column

from skillweave.core.database import Base, JSONType, TimestampMixin
from skillweave.core.utils import new_id, utcnow


class TemplateCategory(str, Enum):
    DEVELOPER = "developer"
    CREATIVE = "creative"
    PROFESSIONAL = "professional"
    BUSINESS = "business"
    STUDENT = "student"
    FREELANCER = "freelancer"


class TemplateDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Template(TimestampMixin, Base):
    """
    A layout/style preset.

    Read-heavy; after creation only the rating and download counters
    change in normal use.
    """

    __tablename__ = "templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), default=TemplateDifficulty.BEGINNER.value, nullable=False)
    preview_image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    template_data: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    styles: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    layout_config: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    features: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    download_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"Template(id={self.id}, name={self.name}, category={self.category})"


class TemplateUsage(Base):
    __tablename__ = "template_usage"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    template_id: Mapped[str] = mapped_column(
        ForeignKey("templates.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
