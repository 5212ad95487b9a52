"""
General utility functions used across the application.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Return current UTC time in ISO 8601 format."""
    return utcnow().isoformat().replace("+00:00", "Z")


def new_id() -> str:
    return str(uuid.uuid4())


def slugify(text: str) -> str:
    """
    Turn a title into a URL slug.

    "My Portfolio!" -> "my-portfolio". Returns "portfolio" when nothing
    alphanumeric is left.
    """
    slug = _SLUG_STRIP.sub("-", (text or "").lower()).strip("-")
    return slug or "portfolio"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return (
        value.replace(escape, escape * 2)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def pick(data: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    """Subset of ``data`` restricted to ``keys`` that are present."""
    return {k: data[k] for k in keys if k in data}
