"""
Supabase reachability probe used by the health endpoint.

Only the hosted Postgres is used through SQLAlchemy; this checks that the
project's REST gateway answers with the configured anon key.
"""

from typing import Any, Dict

import httpx

from skillweave.config import settings
from skillweave.core.logging import get_logger

logger = get_logger(__name__)


async def probe_supabase() -> Dict[str, Any]:
    """
    GET ``{SUPABASE_URL}/rest/v1/`` with the anon key.

    Returns:
        dict: ``{"configured": bool, "reachable": bool|None, "status_code": int|None}``
    """
    if not settings.supabase_configured:
        return {"configured": False, "reachable": None, "status_code": None}

    url = f"{settings.SUPABASE_URL.rstrip('/')}/rest/v1/"
    headers = {
        "apikey": settings.SUPABASE_ANON_KEY,
        "Authorization": f"Bearer {settings.SUPABASE_ANON_KEY}",
    }
    try:
        async with httpx.AsyncClient(timeout=settings.SUPABASE_PROBE_TIMEOUT) as client:
            response = await client.get(url, headers=headers)
        return {
            "configured": True,
            "reachable": response.status_code < 500,
            "status_code": response.status_code,
        }
    except httpx.HTTPError as e:
        logger.warning(f"Supabase probe failed: {e}")
        return {"configured": True, "reachable": False, "status_code": None}
