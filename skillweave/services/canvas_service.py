"""
Canvas Service
==============

State of the manual design canvas: a flat list of positioned elements, the
current selection and a single-slot clipboard.

``DesignCanvas`` is a plain in-memory model. The helpers at the bottom load
it from and save it to the database:

- elements and selection live in ``portfolio.styles["canvas"]``
- the clipboard lives in ``users.preferences["copiedElement"]``, so a copied
  element can be pasted into any of the user's portfolios
"""

import copy
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.core.logging import get_logger
from skillweave.models.portfolio import Portfolio
from skillweave.models.user import User
from skillweave.services import portfolio_service, user_service

logger = get_logger(__name__)

CANVAS_KEY = "canvas"
CLIPBOARD_KEY = "copiedElement"

ELEMENT_TYPES = ("text", "shape", "image", "button", "divider", "icon", "video")
RESIZE_HANDLES = ("nw", "ne", "sw", "se", "n", "s", "e", "w")

MIN_SIZE = 20
PASTE_OFFSET = 20
NUDGE_STEP = 1
NUDGE_STEP_SHIFT = 10

ARROW_KEYS = {
    "ArrowUp": (0, -1),
    "ArrowDown": (0, 1),
    "ArrowLeft": (-1, 0),
    "ArrowRight": (1, 0),
}

TYPE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "text": {"content": "New Text", "width": 200, "height": 40},
    "shape": {"width": 100, "height": 100, "backgroundColor": "#3b82f6"},
    "image": {"width": 150, "height": 150},
    "button": {
        "content": "Click Me",
        "width": 120,
        "height": 40,
        "backgroundColor": "#3b82f6",
        "color": "#ffffff",
        "borderRadius": 8,
    },
    "divider": {"width": 200, "height": 2, "backgroundColor": "#e5e7eb"},
    "icon": {"content": "★", "width": 40, "height": 40, "fontSize": 24},
    "video": {"width": 300, "height": 200},
}


class CanvasError(ValueError):
    """Invalid canvas operation (unknown element type, handle or action)."""


class ElementNotFound(LookupError):
    def __init__(self, element_id: str):
        super().__init__(f"Element not found: {element_id}")
        self.element_id = element_id


def new_element_id() -> str:
    return f"element-{uuid.uuid4().hex[:12]}"


def base_element(element_type: str) -> Dict[str, Any]:
    boxed = element_type in ("shape", "button")
    return {
        "id": new_element_id(),
        "type": element_type,
        "content": "",
        "x": 100,
        "y": 100,
        "width": 100,
        "height": 100,
        "fontSize": 16,
        "fontFamily": "Arial",
        "fontWeight": "normal",
        "fontStyle": "normal",
        "textDecoration": "none",
        "color": "#000000",
        "backgroundColor": "#3b82f6" if boxed else "transparent",
        "borderColor": "#000000",
        "borderWidth": 1 if boxed else 0,
        "borderRadius": 0,
        "lineHeight": 1.5,
        "letterSpacing": 0,
        "opacity": 1,
        "rotation": 0,
        "shadowX": 0,
        "shadowY": 0,
        "shadowBlur": 0,
        "shadowColor": "#000000",
    }


def make_element(element_type: str, **overrides) -> Dict[str, Any]:
    """New element of ``element_type``: base defaults, then type defaults, then overrides."""
    if element_type not in ELEMENT_TYPES:
        raise CanvasError(f"Unknown element type: {element_type}")
    element = base_element(element_type)
    element.update(TYPE_DEFAULTS[element_type])
    element.update(overrides)
    return element


def _resized(element: Dict[str, Any], handle: str, dx: float, dy: float) -> Dict[str, Any]:
    """Geometry after dragging ``handle`` by (dx, dy); the opposite edges stay put."""
    x, y = element["x"], element["y"]
    width, height = element["width"], element["height"]
    updates: Dict[str, Any] = {}

    if "e" in handle:
        updates["width"] = max(MIN_SIZE, width + dx)
    if "w" in handle:
        updates["width"] = max(MIN_SIZE, width - dx)
        updates["x"] = x + (width - updates["width"])
    if "s" in handle:
        updates["height"] = max(MIN_SIZE, height + dy)
    if "n" in handle:
        updates["height"] = max(MIN_SIZE, height - dy)
        updates["y"] = y + (height - updates["height"])
    return updates


class DesignCanvas:
    """
    Element list with direct-manipulation operations.

    Every mutating method returns the element it touched (or None when there
    was nothing to do) so callers can echo it back.
    """

    def __init__(
        self,
        elements: Optional[List[Dict[str, Any]]] = None,
        selected: Optional[str] = None,
        clipboard: Optional[Dict[str, Any]] = None,
    ):
        self.elements: List[Dict[str, Any]] = [dict(e) for e in (elements or [])]
        self.selected = selected if self._index(selected) is not None else None
        self.clipboard = copy.deepcopy(clipboard) if clipboard else None

    @classmethod
    def from_state(cls, state: Optional[Dict[str, Any]], clipboard: Optional[Dict[str, Any]] = None) -> "DesignCanvas":
        state = state or {}
        return cls(state.get("elements"), state.get("selected"), clipboard)

    def to_state(self) -> Dict[str, Any]:
        return {"elements": copy.deepcopy(self.elements), "selected": self.selected}

    def _index(self, element_id: Optional[str]) -> Optional[int]:
        if element_id is None:
            return None
        for i, element in enumerate(self.elements):
            if element.get("id") == element_id:
                return i
        return None

    def get(self, element_id: str) -> Dict[str, Any]:
        index = self._index(element_id)
        if index is None:
            raise ElementNotFound(element_id)
        return self.elements[index]

    @property
    def selected_element(self) -> Optional[Dict[str, Any]]:
        index = self._index(self.selected)
        return self.elements[index] if index is not None else None

    def select(self, element_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if element_id is None:
            self.selected = None
            return None
        element = self.get(element_id)
        self.selected = element_id
        return element

    # Element list

    def add_element(self, element_type: str, **overrides) -> Dict[str, Any]:
        element = make_element(element_type, **overrides)
        self.elements.append(element)
        self.selected = element["id"]
        return element

    def update_element(self, element_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        element = self.get(element_id)
        element.update({k: v for k, v in updates.items() if k not in ("id", "type")})
        return element

    def delete_element(self, element_id: str) -> Dict[str, Any]:
        element = self.get(element_id)
        self.elements = [e for e in self.elements if e["id"] != element_id]
        if self.selected == element_id:
            self.selected = None
        return element

    def clear(self) -> None:
        self.elements = []
        self.selected = None

    # Direct manipulation

    def move_element(self, element_id: str, x: float, y: float) -> Dict[str, Any]:
        return self.update_element(element_id, {"x": max(0, x), "y": max(0, y)})

    def resize_element(self, element_id: str, handle: str, dx: float, dy: float) -> Dict[str, Any]:
        if handle not in RESIZE_HANDLES:
            raise CanvasError(f"Unknown resize handle: {handle}")
        element = self.get(element_id)
        return self.update_element(element_id, _resized(element, handle, dx, dy))

    def rotate_element(self, element_id: str, degrees: float) -> Dict[str, Any]:
        return self.update_element(element_id, {"rotation": degrees % 360})

    def _insert_copy(self, source: Dict[str, Any]) -> Dict[str, Any]:
        element = copy.deepcopy(source)
        element["id"] = new_element_id()
        element["x"] = source.get("x", 0) + PASTE_OFFSET
        element["y"] = source.get("y", 0) + PASTE_OFFSET
        self.elements.append(element)
        self.selected = element["id"]
        return element

    def duplicate_element(self, element_id: str) -> Dict[str, Any]:
        return self._insert_copy(self.get(element_id))

    def copy_element(self, element_id: str) -> Dict[str, Any]:
        self.clipboard = copy.deepcopy(self.get(element_id))
        return self.clipboard

    def paste(self) -> Optional[Dict[str, Any]]:
        if not self.clipboard:
            return None
        return self._insert_copy(self.clipboard)

    def nudge(self, dx: int, dy: int, shift: bool = False) -> Optional[Dict[str, Any]]:
        """Move the selection by one step per unit of (dx, dy); ten with shift."""
        element = self.selected_element
        if element is None:
            return None
        step = NUDGE_STEP_SHIFT if shift else NUDGE_STEP
        return self.move_element(element["id"], element["x"] + dx * step, element["y"] + dy * step)

    # Keyboard

    def handle_key(self, key: str, ctrl: bool = False, shift: bool = False) -> Optional[Dict[str, Any]]:
        """
        Apply a keyboard shortcut to the selection.

        Delete/Backspace delete, Escape deselects, ctrl+c/v/d copy, paste
        and duplicate, arrows nudge. With nothing selected every key is
        ignored. Returns the affected element, if any.
        """
        element = self.selected_element
        if element is None:
            return None

        if key in ("Delete", "Backspace"):
            return self.delete_element(element["id"])
        if key == "Escape":
            self.selected = None
            return None
        if ctrl:
            shortcut = key.lower()
            if shortcut == "c":
                return self.copy_element(element["id"])
            if shortcut == "v":
                return self.paste()
            if shortcut == "d":
                return self.duplicate_element(element["id"])
            return None
        if key in ARROW_KEYS:
            dx, dy = ARROW_KEYS[key]
            return self.nudge(dx, dy, shift=shift)
        return None

    def apply(self, action: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Run one named action with keyword parameters, as sent by the editor."""
        params = params or {}
        handler = ACTIONS.get(action)
        if handler is None:
            raise CanvasError(f"Unknown canvas action: {action}")
        try:
            return handler(self, params)
        except (CanvasError, ElementNotFound):
            raise
        except KeyError as e:
            raise CanvasError(f"Missing parameter for {action}: {e.args[0]}") from e
        except (TypeError, ValueError, AttributeError) as e:
            raise CanvasError(f"Invalid parameters for {action}: {e}") from e


ACTIONS = {
    "add": lambda c, p: c.add_element(p["type"], **p.get("props", {})),
    "update": lambda c, p: c.update_element(p["id"], p.get("updates", {})),
    "delete": lambda c, p: c.delete_element(p["id"]),
    "clear": lambda c, p: c.clear(),
    "select": lambda c, p: c.select(p.get("id")),
    "move": lambda c, p: c.move_element(p["id"], p["x"], p["y"]),
    "resize": lambda c, p: c.resize_element(p["id"], p["handle"], p.get("dx", 0), p.get("dy", 0)),
    "rotate": lambda c, p: c.rotate_element(p["id"], p["degrees"]),
    "duplicate": lambda c, p: c.duplicate_element(p["id"]),
    "copy": lambda c, p: c.copy_element(p["id"]),
    "paste": lambda c, p: c.paste(),
    "nudge": lambda c, p: c.nudge(p.get("dx", 0), p.get("dy", 0), bool(p.get("shift", False))),
    "key": lambda c, p: c.handle_key(p["key"], bool(p.get("ctrl", False)), bool(p.get("shift", False))),
}


# Persistence

def load_canvas(portfolio: Portfolio, user: User) -> DesignCanvas:
    state = (portfolio.styles or {}).get(CANVAS_KEY)
    clipboard = (user.preferences or {}).get(CLIPBOARD_KEY)
    return DesignCanvas.from_state(state, clipboard)


async def save_canvas(
    db: AsyncSession, portfolio: Portfolio, user: User, canvas: DesignCanvas
) -> Tuple[Portfolio, User]:
    """Write the canvas into the portfolio styles and the clipboard into user preferences."""
    styles = dict(portfolio.styles or {})
    styles[CANVAS_KEY] = canvas.to_state()
    portfolio = await portfolio_service.update_by_id(db, portfolio.id, {"styles": styles})

    preferences = dict(user.preferences or {})
    if preferences.get(CLIPBOARD_KEY) != canvas.clipboard:
        if canvas.clipboard:
            preferences[CLIPBOARD_KEY] = canvas.clipboard
        else:
            preferences.pop(CLIPBOARD_KEY, None)
        user = await user_service.update_by_id(db, user.id, {"preferences": preferences})

    logger.debug(f"Canvas saved for portfolio {portfolio.id}: {len(canvas.elements)} elements")
    return portfolio, user
