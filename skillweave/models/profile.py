"""
Profile Details model
=====================

The legacy "Profile Details" table behind the portfolio form's
about-me section. One row per user.
"""

from typing import List, Optional

from sqlalchemy import String, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from skillweave.core.database import Base, JSONType, TimestampMixin
from skillweave.core.utils import new_id


class ProfileDetails(TimestampMixin, Base):
    """Personal details shown on a user's portfolios."""

    __tablename__ = "Profile Details"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True, nullable=False
    )
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    username: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    github: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    linkedin: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    skills: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"ProfileDetails(user_id={self.user_id})"
