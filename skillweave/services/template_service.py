"""
Template Service
================

Table operations for the ``templates`` catalog and ``template_usage`` log.

Listings are ordered by rating (popular lists by downloads). Every filter
only narrows the result set. Writes mark the cached catalog queries stale;
``get_db`` clears them once the request commits.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.config import settings
from skillweave.core.cache import mark_stale
from skillweave.core.errors import translate_errors
from skillweave.core.logging import get_logger
from skillweave.core.utils import escape_like, pick, utcnow
from skillweave.models.template import Template, TemplateDifficulty, TemplateUsage

logger = get_logger(__name__)

ALL_CATEGORIES = "all"

UPDATABLE_FIELDS = (
    "name",
    "description",
    "category",
    "difficulty",
    "preview_image_url",
    "thumbnail_url",
    "template_data",
    "styles",
    "layout_config",
    "features",
    "tags",
    "is_featured",
    "is_premium",
)


def _apply_filters(query, category=None, difficulty=None, featured=None, premium=None):
    if category and category != ALL_CATEGORIES:
        query = query.where(Template.category == category)
    if difficulty:
        query = query.where(Template.difficulty == difficulty)
    if featured is not None:
        query = query.where(Template.is_featured.is_(featured))
    if premium is not None:
        query = query.where(Template.is_premium.is_(premium))
    return query


@translate_errors("creating template")
async def create_template(db: AsyncSession, data: Dict[str, Any]) -> Template:
    template = Template(
        name=data["name"],
        description=data.get("description"),
        category=data["category"],
        difficulty=data.get("difficulty") or TemplateDifficulty.BEGINNER.value,
        preview_image_url=data.get("preview_image_url"),
        thumbnail_url=data.get("thumbnail_url"),
        template_data=data.get("template_data") or {},
        styles=data.get("styles") or {},
        layout_config=data.get("layout_config") or {},
        features=data.get("features") or [],
        tags=data.get("tags") or [],
        is_featured=bool(data.get("is_featured", False)),
        is_premium=bool(data.get("is_premium", False)),
        created_by=data.get("created_by"),
    )
    db.add(template)
    await db.flush()
    await db.refresh(template)
    mark_stale(db)
    logger.info(f"Template created: {template.name} ({template.category})")
    return template


@translate_errors("finding template")
async def find_by_id(db: AsyncSession, template_id: str) -> Optional[Template]:
    result = await db.execute(select(Template).where(Template.id == template_id))
    return result.scalar_one()


@translate_errors("finding templates")
async def find_all(
    db: AsyncSession,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    featured: Optional[bool] = None,
    premium: Optional[bool] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[Template]:
    """
    Catalog listing, best rated first.

    ``category="all"`` disables the category filter. An ``offset`` without a
    ``limit`` pages with the default page size.
    """
    query = _apply_filters(
        select(Template), category=category, difficulty=difficulty, featured=featured, premium=premium
    ).order_by(Template.rating.desc(), Template.created_at.asc())

    if offset:
        query = query.offset(offset).limit(limit or settings.DEFAULT_PAGE_SIZE)
    elif limit:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


@translate_errors("finding templates by category")
async def find_by_category(db: AsyncSession, category: str, limit: int = 10) -> List[Template]:
    result = await db.execute(
        select(Template)
        .where(Template.category == category)
        .order_by(Template.rating.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


@translate_errors("finding featured templates")
async def find_featured(db: AsyncSession, limit: int = 5) -> List[Template]:
    result = await db.execute(
        select(Template)
        .where(Template.is_featured.is_(True))
        .order_by(Template.rating.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


@translate_errors("finding popular templates")
async def find_popular(db: AsyncSession, limit: int = 10) -> List[Template]:
    result = await db.execute(
        select(Template).order_by(Template.download_count.desc(), Template.rating.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def _reload(db: AsyncSession, template_id: str) -> Template:
    result = await db.execute(
        select(Template).where(Template.id == template_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


@translate_errors("updating template")
async def update_by_id(db: AsyncSession, template_id: str, updates: Dict[str, Any]) -> Optional[Template]:
    values = pick(updates, UPDATABLE_FIELDS)
    if values:
        await db.execute(
            update(Template).where(Template.id == template_id).values(**values, updated_at=utcnow())
        )
        mark_stale(db)
    return await _reload(db, template_id)


@translate_errors("incrementing download count")
async def increment_download_count(db: AsyncSession, template_id: str) -> Optional[int]:
    await db.execute(
        update(Template)
        .where(Template.id == template_id)
        .values(download_count=Template.download_count + 1, updated_at=Template.updated_at)
        .execution_options(synchronize_session=False)
    )
    mark_stale(db)
    return await db.scalar(select(Template.download_count).where(Template.id == template_id))


@translate_errors("updating template rating")
async def update_rating(db: AsyncSession, template_id: str, rating: int) -> Optional[Template]:
    """Fold one 1..5 rating into the running average."""
    template = (await db.execute(select(Template).where(Template.id == template_id))).scalar_one()
    count = template.rating_count or 0
    new_average = ((template.rating or 0.0) * count + rating) / (count + 1)

    await db.execute(
        update(Template)
        .where(Template.id == template_id)
        .values(rating=round(new_average, 2), rating_count=count + 1)
    )
    mark_stale(db)
    return await _reload(db, template_id)


@translate_errors("deleting template")
async def delete_by_id(db: AsyncSession, template_id: str) -> Optional[Template]:
    template = (await db.execute(select(Template).where(Template.id == template_id))).scalar_one()
    await db.execute(delete(Template).where(Template.id == template_id))
    mark_stale(db)
    logger.info(f"Template deleted: {template.name}")
    return template


def _tag_matches(db: AsyncSession, pattern: str):
    """EXISTS over the individual elements of the JSON ``tags`` array."""
    if db.get_bind().dialect.name == "postgresql":
        elements = func.jsonb_array_elements_text(Template.tags)
    else:
        elements = func.json_each(Template.tags)
    tag = elements.table_valued("value").alias("tag")
    return select(tag.c.value).where(tag.c.value.ilike(pattern, escape="\\")).exists()


@translate_errors("searching templates")
async def search_templates(
    db: AsyncSession,
    search_query: str,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Template]:
    """Templates whose name, description or tags contain the query, any case."""
    pattern = f"%{escape_like(search_query)}%"
    query = _apply_filters(
        select(Template).where(
            or_(
                Template.name.ilike(pattern, escape="\\"),
                Template.description.ilike(pattern, escape="\\"),
                _tag_matches(db, pattern),
            )
        ),
        category=category,
        difficulty=difficulty,
    ).order_by(Template.rating.desc())
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


@translate_errors("getting template categories")
async def get_categories(db: AsyncSession) -> List[str]:
    result = await db.execute(select(Template.category).distinct().order_by(Template.category))
    return list(result.scalars().all())


@translate_errors("getting template stats")
async def get_stats(db: AsyncSession) -> Dict[str, int]:
    total = await db.scalar(select(func.count()).select_from(Template))
    return {"total_templates": total or 0}


@translate_errors("getting category stats")
async def get_category_stats(db: AsyncSession) -> Dict[str, int]:
    result = await db.execute(
        select(Template.category, func.count()).group_by(Template.category).order_by(Template.category)
    )
    return {category: count for category, count in result.all()}


@translate_errors("tracking template usage")
async def track_usage(db: AsyncSession, template_id: str, user_id: Optional[str]) -> TemplateUsage:
    usage = TemplateUsage(template_id=template_id, user_id=user_id)
    db.add(usage)
    await db.flush()
    await increment_download_count(db, template_id)
    return usage
