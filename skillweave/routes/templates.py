"""
Template catalog routes.
========================

Read endpoints are public and their list payloads are cached in Redis when
the cache is enabled. Rating needs a signed-in user; creating, editing and
deleting templates is admin only.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.core.cache import cache_templates, get_cached_templates
from skillweave.core.database import get_db
from skillweave.core.logging import get_logger
from skillweave.core.security import get_current_admin, get_current_user, get_optional_user
from skillweave.models.template import TemplateCategory, TemplateDifficulty
from skillweave.models.user import User
from skillweave.schemas import TemplateOut, dump, dump_all, envelope
from skillweave.services import template_service

logger = get_logger(__name__)
router = APIRouter()

CATEGORY_FILTER_VALUES = [c.value for c in TemplateCategory] + [template_service.ALL_CATEGORIES]


class CreateTemplateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: TemplateCategory
    difficulty: TemplateDifficulty = TemplateDifficulty.BEGINNER
    preview_image_url: Optional[str] = Field(None, alias="previewImageUrl", max_length=1024)
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl", max_length=1024)
    template_data: Dict[str, Any] = Field(default_factory=dict, alias="templateData")
    styles: Dict[str, Any] = Field(default_factory=dict)
    layout_config: Dict[str, Any] = Field(default_factory=dict, alias="layoutConfig")
    features: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    is_featured: bool = Field(False, alias="isFeatured")
    is_premium: bool = Field(False, alias="isPremium")


class UpdateTemplateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[TemplateCategory] = None
    difficulty: Optional[TemplateDifficulty] = None
    preview_image_url: Optional[str] = Field(None, alias="previewImageUrl", max_length=1024)
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl", max_length=1024)
    template_data: Optional[Dict[str, Any]] = Field(None, alias="templateData")
    styles: Optional[Dict[str, Any]] = None
    layout_config: Optional[Dict[str, Any]] = Field(None, alias="layoutConfig")
    features: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    is_featured: Optional[bool] = Field(None, alias="isFeatured")
    is_premium: Optional[bool] = Field(None, alias="isPremium")


class RateRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Rating must be between 1 and 5")


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")


async def _cached(name: str, params: Dict[str, Any], load: Callable[[], Awaitable[Any]]) -> Any:
    """Serve a catalog query from Redis, loading and storing it on a miss."""
    cached = await get_cached_templates(name, params)
    if cached is not None:
        logger.debug(f"Template cache hit: {name}")
        return cached
    data = await load()
    await cache_templates(name, params, data)
    return data


@router.get("/")
async def list_templates(
    category: Optional[str] = Query(None, description="Category, or 'all'"),
    difficulty: Optional[TemplateDifficulty] = Query(None),
    featured: Optional[bool] = Query(None),
    premium: Optional[bool] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """
    Catalog listing ordered by rating. Each filter only narrows the result;
    ``category=all`` is the same as no category.
    """
    if category is not None and category not in CATEGORY_FILTER_VALUES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category")

    filters = {
        "category": category,
        "difficulty": difficulty.value if difficulty else None,
        "featured": featured,
        "premium": premium,
        "limit": limit,
        "offset": offset,
    }

    async def load():
        templates = await template_service.find_all(db, **filters)
        return dump_all(TemplateOut, templates)

    templates = await _cached("list", filters, load)
    return envelope({"templates": templates, "count": len(templates), "filters": filters})


@router.get("/featured")
async def featured_templates(limit: int = Query(5, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    async def load():
        return dump_all(TemplateOut, await template_service.find_featured(db, limit=limit))

    return envelope({"templates": await _cached("featured", {"limit": limit}, load)})


@router.get("/popular")
async def popular_templates(limit: int = Query(10, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    async def load():
        return dump_all(TemplateOut, await template_service.find_popular(db, limit=limit))

    return envelope({"templates": await _cached("popular", {"limit": limit}, load)})


@router.get("/categories")
async def template_categories(db: AsyncSession = Depends(get_db)):
    async def load():
        return await template_service.get_categories(db)

    return envelope({"categories": await _cached("categories", {}, load)})


@router.get("/category-stats")
async def template_category_stats(db: AsyncSession = Depends(get_db)):
    async def load():
        return await template_service.get_category_stats(db)

    return envelope({"categories": await _cached("category-stats", {}, load)})


@router.get("/stats")
async def template_stats(db: AsyncSession = Depends(get_db)):
    return envelope(await template_service.get_stats(db))


@router.get("/search")
async def search_templates(
    q: str = Query(..., min_length=1, max_length=200),
    category: Optional[str] = Query(None),
    difficulty: Optional[TemplateDifficulty] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Templates whose name, description or tags contain ``q``, any case."""
    templates = await template_service.search_templates(
        db,
        q,
        category=category,
        difficulty=difficulty.value if difficulty else None,
        limit=limit,
    )
    return envelope({"templates": dump_all(TemplateOut, templates), "query": q})


@router.get("/{template_id}")
async def get_template(template_id: str, db: AsyncSession = Depends(get_db)):
    template = await template_service.find_by_id(db, template_id)
    if template is None:
        raise _not_found()
    return envelope({"template": dump(TemplateOut, template)})


@router.post("/{template_id}/use")
async def use_template(
    template_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Record that a template was applied; bumps its download count."""
    template = await template_service.find_by_id(db, template_id)
    if template is None:
        raise _not_found()
    await template_service.track_usage(db, template_id, user.id if user else None)
    await db.refresh(template)
    return envelope({"template": dump(TemplateOut, template)}, "Template usage recorded")


@router.post("/{template_id}/rate")
async def rate_template(
    template_id: str,
    payload: RateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    template = await template_service.update_rating(db, template_id, payload.rating)
    if template is None:
        raise _not_found()
    logger.info(f"Template {template_id} rated {payload.rating} by user {current_user.id}")
    return envelope(
        {"rating": template.rating, "rating_count": template.rating_count},
        "Rating added successfully",
    )


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: CreateTemplateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    data = payload.model_dump(mode="json")
    data["created_by"] = admin.id
    template = await template_service.create_template(db, data)
    return envelope({"template": dump(TemplateOut, template)}, "Template created successfully")


@router.put("/{template_id}")
async def update_template(
    template_id: str,
    payload: UpdateTemplateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    updates = {k: v for k, v in payload.model_dump(mode="json", exclude_unset=True).items() if v is not None
               or k in ("description", "preview_image_url", "thumbnail_url")}
    template = await template_service.update_by_id(db, template_id, updates)
    if template is None:
        raise _not_found()
    return envelope({"template": dump(TemplateOut, template)}, "Template updated successfully")


@router.delete("/{template_id}")
async def delete_template(
    template_id: str,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if await template_service.delete_by_id(db, template_id) is None:
        raise _not_found()
    return envelope(message="Template deleted successfully")
