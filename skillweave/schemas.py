"""
Response models shared by the route modules.

Rows are read straight off the ORM objects (``from_attributes``) and dumped
in JSON mode inside the standard ``{"success", "message", "data"}`` envelope.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserOut(ORMModel):
    """Public view of a user; never includes the password hash."""
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    preferences: Dict[str, Any] = {}
    profile_data: Dict[str, Any] = {}
    is_active: bool
    last_login_at: Optional[datetime] = None
    login_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PortfolioOut(ORMModel):
    id: str
    user_id: str
    template_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    slug: str
    visibility: str
    status: str
    content: Dict[str, Any] = {}
    styles: Dict[str, Any] = {}
    seo_settings: Dict[str, Any] = {}
    analytics_settings: Dict[str, Any] = {}
    view_count: int = 0
    last_published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AnalyticsOut(ORMModel):
    id: str
    portfolio_id: str
    visitor_id: Optional[str] = None
    referrer: Optional[str] = None
    page_path: Optional[str] = None
    country_code: Optional[str] = None
    city: Optional[str] = None
    device_type: Optional[str] = None
    browser: Optional[str] = None
    visited_at: datetime


class TemplateOut(ORMModel):
    id: str
    name: str
    description: Optional[str] = None
    category: str
    difficulty: str
    preview_image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    template_data: Dict[str, Any] = {}
    styles: Dict[str, Any] = {}
    layout_config: Dict[str, Any] = {}
    features: List[str] = []
    tags: List[str] = []
    is_featured: bool = False
    is_premium: bool = False
    rating: float = 0.0
    rating_count: int = 0
    download_count: int = 0
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileOut(ORMModel):
    id: str
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    avatar_url: Optional[str] = None
    skills: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ActivityOut(ORMModel):
    id: str
    portfolio_id: Optional[str] = None
    activity_type: str
    description: Optional[str] = None
    activity_data: Dict[str, Any] = {}
    created_at: datetime


def dump(model: type, row: Any) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return model.model_validate(row).model_dump(mode="json")


def dump_all(model: type, rows: Sequence[Any]) -> List[Dict[str, Any]]:
    return [model.model_validate(row).model_dump(mode="json") for row in rows]


def envelope(data: Any = None, message: str = "OK", **extra) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body
