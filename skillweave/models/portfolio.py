"""
Portfolio models
================

A user's portfolio site record and its per-visit analytics log.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from skillweave.core.database import Base, JSONType, TimestampMixin
from skillweave.core.utils import new_id, utcnow


class PortfolioStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class PortfolioVisibility(str, Enum):
    PRIVATE = "private"
    PUBLIC = "public"
    UNLISTED = "unlisted"


class Portfolio(TimestampMixin, Base):
    """A draft or published personal website owned by a user."""

    __tablename__ = "portfolios"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    template_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("templates.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    visibility: Mapped[str] = mapped_column(String(16), default=PortfolioVisibility.PRIVATE.value, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=PortfolioStatus.DRAFT.value, index=True, nullable=False)
    content: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    styles: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    seo_settings: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    analytics_settings: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_public(self) -> bool:
        return (
            self.visibility == PortfolioVisibility.PUBLIC.value
            and self.status == PortfolioStatus.PUBLISHED.value
        )

    def __repr__(self) -> str:
        return f"Portfolio(id={self.id}, user_id={self.user_id}, slug={self.slug})"


class PortfolioAnalytics(Base):
    """One recorded visit to a portfolio page."""

    __tablename__ = "portfolio_analytics"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    portfolio_id: Mapped[str] = mapped_column(
        ForeignKey("portfolios.id", ondelete="CASCADE"), index=True, nullable=False
    )
    visitor_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    referrer: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    page_path: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    country_code: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    device_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    browser: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    visited_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)

    def __repr__(self) -> str:
        return f"PortfolioAnalytics(portfolio_id={self.portfolio_id}, visited_at={self.visited_at})"
