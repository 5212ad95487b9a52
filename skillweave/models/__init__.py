"""
SQLAlchemy models package for SkillWeave API.

This package contains ORM models for users, portfolios, templates,
profile details and their activity/analytics logs.
"""

from .user import User, UserSession, RecentActivity, UserRole
from .portfolio import Portfolio, PortfolioAnalytics, PortfolioStatus, PortfolioVisibility
from .template import Template, TemplateUsage, TemplateCategory, TemplateDifficulty
from .profile import ProfileDetails

__all__ = [
    "User",
    "UserSession",
    "RecentActivity",
    "UserRole",
    "Portfolio",
    "PortfolioAnalytics",
    "PortfolioStatus",
    "PortfolioVisibility",
    "Template",
    "TemplateUsage",
    "TemplateCategory",
    "TemplateDifficulty",
    "ProfileDetails",
]
