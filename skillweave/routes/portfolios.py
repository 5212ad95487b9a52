"""
Portfolio routes.
=================

CRUD over the signed-in user's portfolios, the public gallery, search,
status lifecycle (publish / unpublish / archive), duplication, visit
analytics and the manual design canvas.

Every write made by the owner is also appended to ``recent_activities``.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.config import settings
from skillweave.core.database import get_db
from skillweave.core.logging import get_logger
from skillweave.core.security import get_current_user, get_optional_user
from skillweave.models.portfolio import Portfolio, PortfolioStatus, PortfolioVisibility
from skillweave.models.user import User
from skillweave.schemas import AnalyticsOut, PortfolioOut, dump, dump_all, envelope
from skillweave.services import canvas_service, portfolio_service, template_service, user_service

logger = get_logger(__name__)
router = APIRouter()


class CreatePortfolioRequest(BaseModel):
    """Request model for creating a portfolio."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=200, description="Portfolio title")
    description: Optional[str] = Field(None, max_length=2000)
    slug: Optional[str] = Field(None, max_length=255, description="Derived from the title when omitted")
    template_id: Optional[str] = Field(None, alias="templateId")
    visibility: Optional[PortfolioVisibility] = None
    status: Optional[PortfolioStatus] = None
    content: Optional[Dict[str, Any]] = None
    styles: Optional[Dict[str, Any]] = None
    seo_settings: Optional[Dict[str, Any]] = Field(None, alias="seoSettings")
    analytics_settings: Optional[Dict[str, Any]] = Field(None, alias="analyticsSettings")


class UpdatePortfolioRequest(BaseModel):
    """Request model for updating a portfolio; only fields sent are changed."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    slug: Optional[str] = Field(None, min_length=1, max_length=255)
    template_id: Optional[str] = Field(None, alias="templateId")
    visibility: Optional[PortfolioVisibility] = None
    status: Optional[PortfolioStatus] = None
    content: Optional[Dict[str, Any]] = None
    styles: Optional[Dict[str, Any]] = None
    seo_settings: Optional[Dict[str, Any]] = Field(None, alias="seoSettings")
    analytics_settings: Optional[Dict[str, Any]] = Field(None, alias="analyticsSettings")


class DuplicateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)


class CanvasRequest(BaseModel):
    elements: List[Dict[str, Any]] = []
    selected: Optional[str] = None


class CanvasActionRequest(BaseModel):
    action: str = Field(..., description="add, update, delete, clear, select, move, resize, rotate, "
                                         "duplicate, copy, paste, nudge or key")
    params: Dict[str, Any] = {}


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Portfolio not found")


async def _owned_portfolio(db: AsyncSession, portfolio_id: str, user: User) -> Portfolio:
    portfolio = await portfolio_service.find_by_id(db, portfolio_id)
    if portfolio is None:
        raise _not_found()
    if portfolio.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return portfolio


async def _log(
    db: AsyncSession,
    user: User,
    activity_type: str,
    description: str,
    portfolio_id: Optional[str] = None,
    **data,
) -> None:
    await user_service.log_activity(
        db,
        user.id,
        {
            "portfolio_id": portfolio_id,
            "activity_type": activity_type,
            "description": description,
            "activity_data": data,
        },
    )


def _page_limit(limit: Optional[int]) -> int:
    return min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)


def _visitor(request: Request) -> Dict[str, Any]:
    return {
        "visitor_id": request.headers.get("x-visitor-id"),
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
        "referrer": request.headers.get("referer"),
        "page_path": request.url.path,
    }


@router.get("/")
async def list_my_portfolios(
    status_filter: Optional[PortfolioStatus] = Query(None, alias="status"),
    visibility: Optional[PortfolioVisibility] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: Optional[int] = Query(None, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    portfolios = await portfolio_service.find_by_user_id(
        db,
        current_user.id,
        status=status_filter.value if status_filter else None,
        visibility=visibility.value if visibility else None,
        limit=limit,
        offset=offset,
    )
    total = await portfolio_service.count_by_user_id(
        db,
        current_user.id,
        status=status_filter.value if status_filter else None,
        visibility=visibility.value if visibility else None,
    )
    return envelope({"portfolios": dump_all(PortfolioOut, portfolios), "total": total})


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_portfolio(
    payload: CreatePortfolioRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a portfolio owned by the current user.

    Using a template records a template usage and bumps its download count.
    """
    if payload.template_id and await template_service.find_by_id(db, payload.template_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")

    data = payload.model_dump(mode="json", exclude_none=True)
    data["user_id"] = current_user.id
    portfolio = await portfolio_service.create_portfolio(db, data)

    if payload.template_id:
        await template_service.track_usage(db, payload.template_id, current_user.id)
    await _log(db, current_user, "portfolio_created", f"Created portfolio \"{portfolio.title}\"", portfolio.id)

    return envelope({"portfolio": dump(PortfolioOut, portfolio)}, "Portfolio created successfully")


@router.get("/public")
async def list_public_portfolios(
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
):
    portfolios = await portfolio_service.get_public_portfolios(db, limit=_page_limit(limit), offset=offset)
    return envelope({"portfolios": dump_all(PortfolioOut, portfolios)})


@router.get("/search")
async def search_portfolios(
    q: str = Query(..., min_length=1, max_length=200),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Public portfolios whose title or description contains ``q``, any case."""
    portfolios = await portfolio_service.search_portfolios(db, q, limit=_page_limit(limit))
    return envelope({"portfolios": dump_all(PortfolioOut, portfolios), "query": q})


@router.get("/stats")
async def my_portfolio_stats(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    stats = {"total": await portfolio_service.count_by_user_id(db, current_user.id)}
    for portfolio_status in PortfolioStatus:
        stats[portfolio_status.value] = await portfolio_service.count_by_user_id(
            db, current_user.id, status=portfolio_status.value
        )
    stats["total_views"] = await portfolio_service.total_views_by_user_id(db, current_user.id)
    return envelope(stats)


@router.get("/slug/{slug}")
async def get_by_slug(
    request: Request,
    slug: str = Path(..., min_length=1),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Public portfolio page. Visits by anyone but the owner are counted and
    logged for analytics.
    """
    portfolio = await portfolio_service.find_by_slug(db, slug)
    if portfolio is None:
        raise _not_found()
    is_owner = viewer is not None and viewer.id == portfolio.user_id
    if not is_owner and portfolio.status != PortfolioStatus.PUBLISHED.value:
        raise _not_found()

    if not is_owner:
        await portfolio_service.increment_view_count(db, portfolio.id)
        await portfolio_service.log_view(db, portfolio.id, _visitor(request))
        await db.refresh(portfolio)

    return envelope({"portfolio": dump(PortfolioOut, portfolio)})


@router.get("/{portfolio_id}")
async def get_portfolio(
    portfolio_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Owners see any of their portfolios; others only published, non-private ones."""
    portfolio = await portfolio_service.find_by_id(db, portfolio_id)
    if portfolio is None:
        raise _not_found()

    is_owner = viewer is not None and viewer.id == portfolio.user_id
    shared = (
        portfolio.status == PortfolioStatus.PUBLISHED.value
        and portfolio.visibility != PortfolioVisibility.PRIVATE.value
    )
    if not (is_owner or shared):
        raise _not_found()
    return envelope({"portfolio": dump(PortfolioOut, portfolio)})


@router.put("/{portfolio_id}")
async def update_portfolio(
    portfolio_id: str,
    payload: UpdatePortfolioRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update the fields sent. A status change goes through the same
    transitions as the publish/unpublish/archive endpoints.
    """
    await _owned_portfolio(db, portfolio_id, current_user)

    updates = payload.model_dump(mode="json", exclude_unset=True)
    for required in ("title", "slug", "visibility", "content", "styles", "seo_settings", "analytics_settings"):
        if updates.get(required, "") is None:
            del updates[required]
    new_status = updates.pop("status", None)
    if updates.get("template_id") and await template_service.find_by_id(db, updates["template_id"]) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")

    portfolio = await portfolio_service.update_by_id(db, portfolio_id, updates)
    if new_status == PortfolioStatus.PUBLISHED.value:
        portfolio = await portfolio_service.update_published_status(db, portfolio_id, True)
    elif new_status == PortfolioStatus.DRAFT.value:
        portfolio = await portfolio_service.update_published_status(db, portfolio_id, False)
    elif new_status == PortfolioStatus.ARCHIVED.value:
        portfolio = await portfolio_service.archive_portfolio(db, portfolio_id)

    await _log(
        db, current_user, "portfolio_updated", f"Updated portfolio \"{portfolio.title}\"", portfolio.id,
        fields=sorted(payload.model_fields_set),
    )
    return envelope({"portfolio": dump(PortfolioOut, portfolio)}, "Portfolio updated successfully")


@router.delete("/{portfolio_id}")
async def delete_portfolio(
    portfolio_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    portfolio = await _owned_portfolio(db, portfolio_id, current_user)
    title = portfolio.title
    await portfolio_service.delete_by_id(db, portfolio_id)
    await _log(db, current_user, "portfolio_deleted", f"Deleted portfolio \"{title}\"", None,
               portfolio_id=portfolio_id)
    return envelope(message="Portfolio deleted successfully")


TRANSITION_LABELS = {"publish": "published", "unpublish": "unpublished", "archive": "archived"}


async def _transition(db: AsyncSession, portfolio_id: str, user: User, action: str) -> Portfolio:
    await _owned_portfolio(db, portfolio_id, user)
    if action == "publish":
        portfolio = await portfolio_service.update_published_status(db, portfolio_id, True)
    elif action == "unpublish":
        portfolio = await portfolio_service.update_published_status(db, portfolio_id, False)
    else:
        portfolio = await portfolio_service.archive_portfolio(db, portfolio_id)

    label = TRANSITION_LABELS[action]
    await _log(db, user, f"portfolio_{label}", f"{label.capitalize()} portfolio \"{portfolio.title}\"",
               portfolio.id, status=portfolio.status)
    return portfolio


@router.post("/{portfolio_id}/publish")
async def publish_portfolio(
    portfolio_id: str, current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    """Publish; publishing an already published portfolio changes nothing."""
    portfolio = await _transition(db, portfolio_id, current_user, "publish")
    return envelope({"portfolio": dump(PortfolioOut, portfolio)}, "Portfolio published successfully")


@router.post("/{portfolio_id}/unpublish")
async def unpublish_portfolio(
    portfolio_id: str, current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    portfolio = await _transition(db, portfolio_id, current_user, "unpublish")
    return envelope({"portfolio": dump(PortfolioOut, portfolio)}, "Portfolio unpublished successfully")


@router.post("/{portfolio_id}/archive")
async def archive_portfolio(
    portfolio_id: str, current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    portfolio = await _transition(db, portfolio_id, current_user, "archive")
    return envelope({"portfolio": dump(PortfolioOut, portfolio)}, "Portfolio archived successfully")


@router.post("/{portfolio_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_portfolio(
    portfolio_id: str,
    payload: Optional[DuplicateRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    source = await _owned_portfolio(db, portfolio_id, current_user)
    title = (payload.title if payload and payload.title else None) or f"{source.title} (Copy)"
    copy = await portfolio_service.duplicate_portfolio(db, portfolio_id, title)
    await _log(db, current_user, "portfolio_duplicated", f"Duplicated \"{source.title}\"", copy.id,
               source_id=portfolio_id)
    return envelope({"portfolio": dump(PortfolioOut, copy)}, "Portfolio duplicated successfully")


@router.get("/{portfolio_id}/analytics")
async def get_portfolio_analytics(
    portfolio_id: str,
    time_range: str = Query(portfolio_service.DEFAULT_ANALYTICS_RANGE, alias="range"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Visits in the last 7, 30 or 90 days; any other range means 30."""
    portfolio = await _owned_portfolio(db, portfolio_id, current_user)
    views = await portfolio_service.get_analytics(db, portfolio_id, time_range)
    visitors = {v.visitor_id or v.ip_address for v in views if v.visitor_id or v.ip_address}
    return envelope(
        {
            "portfolio_id": portfolio.id,
            "range_days": portfolio_service.analytics_window_days(time_range),
            "total_views": len(views),
            "unique_visitors": len(visitors),
            "view_count": portfolio.view_count,
            "views": dump_all(AnalyticsOut, views),
        }
    )


# Design canvas

def _canvas_body(canvas: canvas_service.DesignCanvas, element: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body = {"canvas": canvas.to_state(), "clipboard": canvas.clipboard}
    if element is not None:
        body["element"] = element
    return body


@router.get("/{portfolio_id}/canvas")
async def get_canvas(
    portfolio_id: str, current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    portfolio = await _owned_portfolio(db, portfolio_id, current_user)
    return envelope(_canvas_body(canvas_service.load_canvas(portfolio, current_user)))


@router.put("/{portfolio_id}/canvas")
async def save_canvas(
    portfolio_id: str,
    payload: CanvasRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace the element list and selection; the clipboard is kept."""
    portfolio = await _owned_portfolio(db, portfolio_id, current_user)
    clipboard = canvas_service.load_canvas(portfolio, current_user).clipboard
    canvas = canvas_service.DesignCanvas(payload.elements, payload.selected, clipboard)
    await canvas_service.save_canvas(db, portfolio, current_user, canvas)
    await _log(db, current_user, "canvas_saved", f"Saved design of \"{portfolio.title}\"", portfolio.id,
               elements=len(canvas.elements))
    return envelope(_canvas_body(canvas), "Canvas saved successfully")


@router.post("/{portfolio_id}/canvas/actions")
async def apply_canvas_action(
    portfolio_id: str,
    payload: CanvasActionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Apply one editor action (drag, resize, keyboard shortcut, ...) to the
    stored canvas and save the result.
    """
    portfolio = await _owned_portfolio(db, portfolio_id, current_user)
    canvas = canvas_service.load_canvas(portfolio, current_user)
    try:
        element = canvas.apply(payload.action, payload.params)
    except canvas_service.ElementNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e.args[0]))
    except canvas_service.CanvasError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await canvas_service.save_canvas(db, portfolio, current_user, canvas)
    return envelope(_canvas_body(canvas, element))
