"""
Portfolio Service
=================

Table operations for ``portfolios`` and ``portfolio_analytics``.

Features:
- Create/read/update/delete with unique slug generation
- Owner listing with status/visibility filters and paging
- Public gallery and case-insensitive title/description search
- Status lifecycle: draft -> published -> archived (idempotent transitions)
- Duplicate a portfolio as a new private draft
- View counting and visit logging with 7/30/90 day analytics windows
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.core.errors import translate_errors
from skillweave.core.logging import get_logger
from skillweave.core.utils import escape_like, pick, slugify, utcnow
from skillweave.models.portfolio import (
    Portfolio,
    PortfolioAnalytics,
    PortfolioStatus,
    PortfolioVisibility,
)

logger = get_logger(__name__)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "slug",
    "template_id",
    "visibility",
    "status",
    "content",
    "styles",
    "seo_settings",
    "analytics_settings",
)

VISITOR_FIELDS = (
    "visitor_id",
    "ip_address",
    "user_agent",
    "referrer",
    "page_path",
    "country_code",
    "city",
    "device_type",
    "browser",
)

ANALYTICS_RANGES = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_ANALYTICS_RANGE = "30d"


async def _slug_taken(db: AsyncSession, slug: str, exclude_id: Optional[str]) -> bool:
    query = select(Portfolio.id).where(Portfolio.slug == slug)
    if exclude_id:
        query = query.where(Portfolio.id != exclude_id)
    return (await db.scalar(query)) is not None


async def unique_slug(db: AsyncSession, text: str, exclude_id: Optional[str] = None) -> str:
    """
    Slug for ``text`` that no other portfolio uses.

    Collisions get a numeric suffix: "jane-doe", "jane-doe-1", "jane-doe-2", ...
    """
    base = slugify(text)
    candidate = base
    counter = 1
    while await _slug_taken(db, candidate, exclude_id):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


async def _reload(db: AsyncSession, portfolio_id: str) -> Portfolio:
    result = await db.execute(
        select(Portfolio)
        .where(Portfolio.id == portfolio_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@translate_errors("creating portfolio")
async def create_portfolio(db: AsyncSession, data: Dict[str, Any]) -> Portfolio:
    slug = data.get("slug")
    slug = await unique_slug(db, slug or data["title"])

    portfolio = Portfolio(
        user_id=data["user_id"],
        template_id=data.get("template_id"),
        title=data["title"],
        description=data.get("description"),
        slug=slug,
        visibility=data.get("visibility") or PortfolioVisibility.PRIVATE.value,
        status=data.get("status") or PortfolioStatus.DRAFT.value,
        content=data.get("content") or {},
        styles=data.get("styles") or {},
        seo_settings=data.get("seo_settings") or {},
        analytics_settings=data.get("analytics_settings") or {},
    )
    if portfolio.status == PortfolioStatus.PUBLISHED.value:
        portfolio.last_published_at = utcnow()

    db.add(portfolio)
    await db.flush()
    await db.refresh(portfolio)
    logger.info(f"Portfolio created: {portfolio.slug} (user {portfolio.user_id})")
    return portfolio


@translate_errors("finding portfolio")
async def find_by_id(db: AsyncSession, portfolio_id: str) -> Optional[Portfolio]:
    result = await db.execute(select(Portfolio).where(Portfolio.id == portfolio_id))
    return result.scalar_one()


@translate_errors("finding portfolio by slug")
async def find_by_slug(db: AsyncSession, slug: str) -> Optional[Portfolio]:
    """Public portfolio with ``slug``; private and unlisted rows are not found."""
    result = await db.execute(
        select(Portfolio).where(
            Portfolio.slug == slug,
            Portfolio.visibility == PortfolioVisibility.PUBLIC.value,
        )
    )
    return result.scalar_one()


@translate_errors("finding user portfolios")
async def find_by_user_id(
    db: AsyncSession,
    user_id: str,
    status: Optional[str] = None,
    visibility: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[Portfolio]:
    query = (
        select(Portfolio)
        .where(Portfolio.user_id == user_id)
        .order_by(Portfolio.updated_at.desc())
    )
    if status:
        query = query.where(Portfolio.status == status)
    if visibility:
        query = query.where(Portfolio.visibility == visibility)
    if limit:
        query = query.limit(limit)
    if offset:
        query = query.offset(offset)

    result = await db.execute(query)
    return list(result.scalars().all())


@translate_errors("counting user portfolios")
async def count_by_user_id(
    db: AsyncSession, user_id: str, status: Optional[str] = None, visibility: Optional[str] = None
) -> int:
    query = select(func.count()).select_from(Portfolio).where(Portfolio.user_id == user_id)
    if status:
        query = query.where(Portfolio.status == status)
    if visibility:
        query = query.where(Portfolio.visibility == visibility)
    return (await db.scalar(query)) or 0


@translate_errors("updating portfolio")
async def update_by_id(db: AsyncSession, portfolio_id: str, updates: Dict[str, Any]) -> Optional[Portfolio]:
    values = pick(updates, UPDATABLE_FIELDS)
    if "slug" in values:
        values["slug"] = await unique_slug(db, values["slug"], exclude_id=portfolio_id)
    if values:
        await db.execute(
            update(Portfolio).where(Portfolio.id == portfolio_id).values(**values, updated_at=utcnow())
        )
    return await _reload(db, portfolio_id)


@translate_errors("deleting portfolio")
async def delete_by_id(db: AsyncSession, portfolio_id: str) -> Optional[Portfolio]:
    result = await db.execute(select(Portfolio).where(Portfolio.id == portfolio_id))
    portfolio = result.scalar_one()
    await db.execute(delete(Portfolio).where(Portfolio.id == portfolio_id))
    logger.info(f"Portfolio deleted: {portfolio.slug}")
    return portfolio


@translate_errors("incrementing view count")
async def increment_view_count(db: AsyncSession, portfolio_id: str) -> Optional[int]:
    await db.execute(
        update(Portfolio)
        .where(Portfolio.id == portfolio_id)
        .values(view_count=Portfolio.view_count + 1, updated_at=Portfolio.updated_at)
        .execution_options(synchronize_session=False)
    )
    return await db.scalar(select(Portfolio.view_count).where(Portfolio.id == portfolio_id))


@translate_errors("updating published status")
async def update_published_status(
    db: AsyncSession, portfolio_id: str, is_published: bool = True
) -> Optional[Portfolio]:
    """
    Publish or unpublish a portfolio.

    Publishing an already published portfolio leaves it untouched,
    including ``last_published_at``. Unpublishing moves it back to draft.
    """
    portfolio = (await db.execute(select(Portfolio).where(Portfolio.id == portfolio_id))).scalar_one()
    target = PortfolioStatus.PUBLISHED.value if is_published else PortfolioStatus.DRAFT.value
    if portfolio.status == target:
        return portfolio

    values: Dict[str, Any] = {"status": target, "updated_at": utcnow()}
    if is_published:
        values["last_published_at"] = utcnow()
    await db.execute(update(Portfolio).where(Portfolio.id == portfolio_id).values(**values))
    logger.info(f"Portfolio {portfolio_id} status: {portfolio.status} -> {target}")
    return await _reload(db, portfolio_id)


@translate_errors("archiving portfolio")
async def archive_portfolio(db: AsyncSession, portfolio_id: str) -> Optional[Portfolio]:
    portfolio = (await db.execute(select(Portfolio).where(Portfolio.id == portfolio_id))).scalar_one()
    if portfolio.status == PortfolioStatus.ARCHIVED.value:
        return portfolio
    await db.execute(
        update(Portfolio)
        .where(Portfolio.id == portfolio_id)
        .values(status=PortfolioStatus.ARCHIVED.value, updated_at=utcnow())
    )
    return await _reload(db, portfolio_id)


@translate_errors("duplicating portfolio")
async def duplicate_portfolio(db: AsyncSession, portfolio_id: str, new_title: str) -> Optional[Portfolio]:
    """Copy a portfolio as a private draft with a fresh slug and no views."""
    source = (await db.execute(select(Portfolio).where(Portfolio.id == portfolio_id))).scalar_one()

    copy = Portfolio(
        user_id=source.user_id,
        template_id=source.template_id,
        title=new_title,
        description=source.description,
        slug=await unique_slug(db, new_title),
        visibility=PortfolioVisibility.PRIVATE.value,
        status=PortfolioStatus.DRAFT.value,
        content=dict(source.content or {}),
        styles=dict(source.styles or {}),
        seo_settings=dict(source.seo_settings or {}),
        analytics_settings=dict(source.analytics_settings or {}),
    )
    db.add(copy)
    await db.flush()
    await db.refresh(copy)
    return copy


def _public_query():
    return select(Portfolio).where(
        Portfolio.visibility == PortfolioVisibility.PUBLIC.value,
        Portfolio.status == PortfolioStatus.PUBLISHED.value,
    )


@translate_errors("getting public portfolios")
async def get_public_portfolios(
    db: AsyncSession, limit: Optional[int] = None, offset: Optional[int] = None
) -> List[Portfolio]:
    query = _public_query().order_by(Portfolio.view_count.desc())
    if limit:
        query = query.limit(limit)
    if offset:
        query = query.offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


@translate_errors("searching portfolios")
async def search_portfolios(db: AsyncSession, search_query: str, limit: Optional[int] = None) -> List[Portfolio]:
    """Public, published portfolios whose title or description contains the query."""
    pattern = f"%{escape_like(search_query)}%"
    query = (
        _public_query()
        .where(
            or_(
                Portfolio.title.ilike(pattern, escape="\\"),
                Portfolio.description.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Portfolio.view_count.desc())
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


@translate_errors("getting portfolio stats")
async def get_stats(db: AsyncSession) -> Dict[str, int]:
    total = await db.scalar(select(func.count()).select_from(Portfolio))
    published = await db.scalar(
        select(func.count()).select_from(Portfolio).where(Portfolio.status == PortfolioStatus.PUBLISHED.value)
    )
    return {"total_portfolios": total or 0, "published_portfolios": published or 0}


# Analytics

@translate_errors("logging portfolio view")
async def log_view(db: AsyncSession, portfolio_id: str, visitor: Dict[str, Any]) -> PortfolioAnalytics:
    entry = PortfolioAnalytics(portfolio_id=portfolio_id, **pick(visitor, VISITOR_FIELDS))
    db.add(entry)
    await db.flush()
    return entry


def analytics_window_days(time_range: Optional[str]) -> int:
    """Days covered by ``time_range``; unknown ranges mean 30 days."""
    return ANALYTICS_RANGES.get(time_range or DEFAULT_ANALYTICS_RANGE, ANALYTICS_RANGES[DEFAULT_ANALYTICS_RANGE])


@translate_errors("getting portfolio analytics")
async def get_analytics(
    db: AsyncSession, portfolio_id: str, time_range: str = DEFAULT_ANALYTICS_RANGE
) -> List[PortfolioAnalytics]:
    from_date = utcnow() - timedelta(days=analytics_window_days(time_range))
    result = await db.execute(
        select(PortfolioAnalytics)
        .where(
            PortfolioAnalytics.portfolio_id == portfolio_id,
            PortfolioAnalytics.visited_at >= from_date,
        )
        .order_by(PortfolioAnalytics.visited_at.desc())
    )
    return list(result.scalars().all())


@translate_errors("summing portfolio views")
async def total_views_by_user_id(db: AsyncSession, user_id: str) -> int:
    total = await db.scalar(
        select(func.coalesce(func.sum(Portfolio.view_count), 0)).where(Portfolio.user_id == user_id)
    )
    return int(total or 0)
