"""
Design canvas tests.
====================

``DesignCanvas`` geometry and keyboard behaviour, plus the
/api/portfolios/{id}/canvas endpoints and clipboard persistence.
"""

import pytest

from skillweave.services.canvas_service import (
    MIN_SIZE,
    PASTE_OFFSET,
    CanvasError,
    DesignCanvas,
    ElementNotFound,
    make_element,
)


@pytest.fixture
def canvas():
    return DesignCanvas()


@pytest.fixture
def box(canvas):
    """A 100x100 shape at (100, 100), selected."""
    return canvas.add_element("shape")


class TestElements:
    def test_type_defaults(self):
        text = make_element("text")
        assert text["content"] == "New Text"
        assert (text["width"], text["height"]) == (200, 40)
        assert text["backgroundColor"] == "transparent"
        assert text["borderWidth"] == 0

        button = make_element("button")
        assert button["content"] == "Click Me"
        assert button["color"] == "#ffffff"
        assert button["borderWidth"] == 1

        assert make_element("divider")["height"] == 2

    def test_overrides_win(self):
        element = make_element("text", content="Hello", x=5)
        assert element["content"] == "Hello"
        assert element["x"] == 5
        assert element["id"].startswith("element-")

    def test_unknown_type(self, canvas):
        with pytest.raises(CanvasError):
            canvas.add_element("hologram")

    def test_add_selects_new_element(self, canvas):
        first = canvas.add_element("text")
        second = canvas.add_element("image")
        assert canvas.selected == second["id"]
        assert first["id"] != second["id"]

    def test_update_keeps_identity(self, canvas, box):
        canvas.update_element(box["id"], {"id": "other", "type": "text", "color": "#ff0000"})
        element = canvas.get(box["id"])
        assert element["type"] == "shape"
        assert element["color"] == "#ff0000"

    def test_delete_clears_selection(self, canvas, box):
        canvas.delete_element(box["id"])
        assert canvas.elements == []
        assert canvas.selected is None

    def test_missing_element(self, canvas):
        with pytest.raises(ElementNotFound, match="Element not found: nope"):
            canvas.move_element("nope", 1, 1)

    def test_stale_selection_dropped(self):
        canvas = DesignCanvas([make_element("text", id="a")], selected="b")
        assert canvas.selected is None


class TestGeometry:
    def test_move_clamps_at_origin(self, canvas, box):
        element = canvas.move_element(box["id"], -30, 40)
        assert (element["x"], element["y"]) == (0, 40)

    def test_resize_se_grows(self, canvas, box):
        element = canvas.resize_element(box["id"], "se", 50, 10)
        assert (element["x"], element["y"]) == (100, 100)
        assert (element["width"], element["height"]) == (150, 110)

    def test_resize_nw_keeps_opposite_corner(self, canvas, box):
        element = canvas.resize_element(box["id"], "nw", 30, 20)
        assert (element["width"], element["height"]) == (70, 80)
        assert (element["x"], element["y"]) == (130, 120)
        # bottom-right corner unchanged
        assert element["x"] + element["width"] == 200
        assert element["y"] + element["height"] == 200

    def test_resize_minimum_size(self, canvas, box):
        element = canvas.resize_element(box["id"], "nw", 500, 500)
        assert (element["width"], element["height"]) == (MIN_SIZE, MIN_SIZE)
        assert element["x"] + element["width"] == 200
        assert element["y"] + element["height"] == 200

    @pytest.mark.parametrize("handle, expected", [
        ("e", (100, 100, 110, 100)),
        ("w", (110, 100, 90, 100)),
        ("s", (100, 100, 100, 110)),
        ("n", (100, 110, 100, 90)),
    ])
    def test_edge_handles_move_one_axis(self, canvas, box, handle, expected):
        element = canvas.resize_element(box["id"], handle, 10, 10)
        assert (element["x"], element["y"], element["width"], element["height"]) == expected

    def test_unknown_handle(self, canvas, box):
        with pytest.raises(CanvasError):
            canvas.resize_element(box["id"], "middle", 1, 1)

    @pytest.mark.parametrize("degrees, expected", [(90, 90), (360, 0), (450, 90), (-90, 270)])
    def test_rotation_normalized(self, canvas, box, degrees, expected):
        assert canvas.rotate_element(box["id"], degrees)["rotation"] == expected


class TestClipboard:
    def test_duplicate_offsets_copy(self, canvas, box):
        clone = canvas.duplicate_element(box["id"])
        assert clone["id"] != box["id"]
        assert (clone["x"], clone["y"]) == (100 + PASTE_OFFSET, 100 + PASTE_OFFSET)
        assert canvas.selected == clone["id"]
        assert len(canvas.elements) == 2

    def test_paste_empty_clipboard(self, canvas):
        assert canvas.paste() is None
        assert canvas.elements == []

    def test_copy_then_paste_twice(self, canvas, box):
        canvas.copy_element(box["id"])
        first = canvas.paste()
        second = canvas.paste()

        assert first["id"] != second["id"]
        assert (first["x"], first["y"]) == (120, 120)
        assert (second["x"], second["y"]) == (120, 120)
        assert len(canvas.elements) == 3

    def test_clipboard_is_a_snapshot(self, canvas, box):
        canvas.copy_element(box["id"])
        canvas.update_element(box["id"], {"color": "#123456"})
        assert canvas.paste()["color"] == "#000000"


class TestKeyboard:
    def test_keys_ignored_without_selection(self, canvas, box):
        canvas.select(None)
        for key in ("Delete", "ArrowUp", "Escape"):
            assert canvas.handle_key(key) is None
        assert canvas.handle_key("d", ctrl=True) is None
        assert len(canvas.elements) == 1
        assert (box["x"], box["y"]) == (100, 100)

    def test_arrow_nudges(self, canvas, box):
        canvas.handle_key("ArrowRight")
        canvas.handle_key("ArrowDown", shift=True)
        assert (box["x"], box["y"]) == (101, 110)

    def test_nudge_clamps_at_origin(self, canvas):
        element = canvas.add_element("text", x=5, y=0)
        canvas.handle_key("ArrowLeft", shift=True)
        canvas.handle_key("ArrowUp")
        assert (element["x"], element["y"]) == (0, 0)

    def test_delete_key(self, canvas, box):
        assert canvas.handle_key("Backspace")["id"] == box["id"]
        assert canvas.elements == []

    def test_escape_deselects(self, canvas, box):
        canvas.handle_key("Escape")
        assert canvas.selected is None

    def test_ctrl_shortcuts(self, canvas, box):
        canvas.handle_key("c", ctrl=True)
        assert canvas.clipboard["id"] == box["id"]

        pasted = canvas.handle_key("V", ctrl=True)
        assert pasted["id"] != box["id"]
        assert canvas.selected == pasted["id"]

        duplicated = canvas.handle_key("d", ctrl=True)
        assert (duplicated["x"], duplicated["y"]) == (pasted["x"] + 20, pasted["y"] + 20)


class TestApply:
    def test_apply_dispatches(self, canvas):
        element = canvas.apply("add", {"type": "text", "props": {"content": "Hi"}})
        canvas.apply("move", {"id": element["id"], "x": 10, "y": 20})
        assert (element["x"], element["y"], element["content"]) == (10, 20, "Hi")

        canvas.apply("clear")
        assert canvas.elements == []

    def test_unknown_action(self, canvas):
        with pytest.raises(CanvasError, match="Unknown canvas action"):
            canvas.apply("explode")

    def test_missing_parameter(self, canvas):
        with pytest.raises(CanvasError, match="Missing parameter"):
            canvas.apply("move", {"x": 1, "y": 1})

    @pytest.mark.parametrize("action, params", [
        ("move", {"x": "abc", "y": 5}),
        ("rotate", {"degrees": "90"}),
        ("resize", {"handle": "se", "dx": "wide"}),
        ("update", {"updates": ["x"]}),
    ])
    def test_bad_parameter_types(self, canvas, box, action, params):
        before = canvas.to_state()
        with pytest.raises(CanvasError, match=f"Invalid parameters for {action}"):
            canvas.apply(action, {"id": box["id"], **params})
        assert canvas.to_state() == before

    def test_add_with_bad_props(self, canvas):
        with pytest.raises(CanvasError, match="Invalid parameters for add"):
            canvas.apply("add", {"type": "text", "props": ["x"]})
        assert canvas.elements == []

    def test_element_errors_keep_their_message(self, canvas):
        with pytest.raises(CanvasError, match="Unknown element type: hologram"):
            canvas.apply("add", {"type": "hologram"})
        with pytest.raises(ElementNotFound):
            canvas.apply("rotate", {"id": "element-missing", "degrees": 90})

    def test_state_round_trip_is_detached(self, canvas, box):
        state = canvas.to_state()
        restored = DesignCanvas.from_state(state)
        restored.move_element(box["id"], 0, 0)
        assert (box["x"], box["y"]) == (100, 100)
        assert restored.selected == box["id"]


class TestCanvasRoutes:
    @pytest.fixture
    def portfolio_id(self, client, user_headers):
        response = client.post("/api/portfolios/", json={"title": "Canvas"}, headers=user_headers)
        return response.json()["data"]["portfolio"]["id"]

    def _action(self, client, headers, portfolio_id, action, **params):
        return client.post(
            f"/api/portfolios/{portfolio_id}/canvas/actions",
            json={"action": action, "params": params},
            headers=headers,
        )

    def test_empty_canvas(self, client, user_headers, portfolio_id):
        response = client.get(f"/api/portfolios/{portfolio_id}/canvas", headers=user_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["canvas"] == {"elements": [], "selected": None}
        assert data["clipboard"] is None

    def test_actions_persist(self, client, user_headers, portfolio_id):
        added = self._action(client, user_headers, portfolio_id, "add", type="shape")
        assert added.status_code == 200
        element_id = added.json()["data"]["element"]["id"]

        self._action(client, user_headers, portfolio_id, "resize", id=element_id, handle="se", dx=20, dy=0)
        self._action(client, user_headers, portfolio_id, "key", key="ArrowRight", shift=True)

        canvas = client.get(f"/api/portfolios/{portfolio_id}/canvas", headers=user_headers).json()["data"]["canvas"]
        assert canvas["selected"] == element_id
        [element] = canvas["elements"]
        assert (element["x"], element["width"]) == (110, 120)

    def test_put_replaces_elements(self, client, user_headers, portfolio_id):
        elements = [make_element("text", id="t1"), make_element("image", id="i1")]
        response = client.put(
            f"/api/portfolios/{portfolio_id}/canvas",
            json={"elements": elements, "selected": "i1"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Canvas saved successfully"

        canvas = client.get(f"/api/portfolios/{portfolio_id}/canvas", headers=user_headers).json()["data"]["canvas"]
        assert [e["id"] for e in canvas["elements"]] == ["t1", "i1"]
        assert canvas["selected"] == "i1"

    def test_canvas_keeps_other_styles(self, client, user_headers, portfolio_id):
        client.put(f"/api/portfolios/{portfolio_id}", json={"styles": {"theme": "dark"}}, headers=user_headers)
        self._action(client, user_headers, portfolio_id, "add", type="text")

        styles = client.get(f"/api/portfolios/{portfolio_id}", headers=user_headers).json()["data"]["portfolio"]["styles"]
        assert styles["theme"] == "dark"
        assert len(styles["canvas"]["elements"]) == 1

    def test_clipboard_shared_across_portfolios(self, client, user_headers, portfolio_id):
        added = self._action(client, user_headers, portfolio_id, "add", type="button")
        element_id = added.json()["data"]["element"]["id"]
        copied = self._action(client, user_headers, portfolio_id, "copy", id=element_id)
        assert copied.json()["data"]["clipboard"]["id"] == element_id

        other = client.post("/api/portfolios/", json={"title": "Second"}, headers=user_headers)
        other_id = other.json()["data"]["portfolio"]["id"]

        pasted = self._action(client, user_headers, other_id, "paste")
        assert pasted.status_code == 200
        element = pasted.json()["data"]["element"]
        assert element["type"] == "button"
        assert element["id"] != element_id

        me = client.get("/api/auth/me", headers=user_headers).json()["data"]["user"]
        assert me["preferences"]["copiedElement"]["id"] == element_id

    def test_action_errors(self, client, user_headers, portfolio_id):
        missing = self._action(client, user_headers, portfolio_id, "delete", id="element-missing")
        assert missing.status_code == 404
        assert missing.json()["message"] == "Element not found: element-missing"

        unknown = self._action(client, user_headers, portfolio_id, "explode")
        assert unknown.status_code == 400

        bad_type = self._action(client, user_headers, portfolio_id, "add", type="hologram")
        assert bad_type.status_code == 400

    def test_bad_parameter_types_are_client_errors(self, client, user_headers, portfolio_id):
        added = self._action(client, user_headers, portfolio_id, "add", type="shape")
        element_id = added.json()["data"]["element"]["id"]

        response = self._action(client, user_headers, portfolio_id, "move", id=element_id, x="abc", y=5)
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid parameters for move")

        response = self._action(client, user_headers, portfolio_id, "add", type="text", props=["x"])
        assert response.status_code == 400

        canvas = client.get(f"/api/portfolios/{portfolio_id}/canvas", headers=user_headers).json()["data"]["canvas"]
        [element] = canvas["elements"]
        assert (element["x"], element["y"]) == (100, 100)

    def test_canvas_owner_only(self, client, user_headers, other_headers, portfolio_id):
        response = client.get(f"/api/portfolios/{portfolio_id}/canvas", headers=other_headers)
        assert response.status_code == 403

        response = self._action(client, other_headers, portfolio_id, "add", type="text")
        assert response.status_code == 403
