"""
Template catalog tests.
=======================

Filters, ordering, rating averages, usage tracking, search and the
admin-only write endpoints.
"""

import pytest

from skillweave.core.cache import STALE_NAMESPACES_KEY, clear_stale, discard_stale
from skillweave.services import template_service

CATALOG = [
    {"name": "Dev Dark", "category": "developer", "difficulty": "advanced", "tags": ["dark", "react"],
     "isFeatured": True},
    {"name": "Dev Light", "category": "developer", "difficulty": "beginner", "tags": ["light"]},
    {"name": "Artsy", "category": "creative", "difficulty": "beginner", "description": "Bold colours",
     "isPremium": True},
    {"name": "Suit", "category": "professional", "difficulty": "intermediate", "tags": ["corporate"]},
    {"name": "Campus", "category": "student", "difficulty": "beginner", "isFeatured": True},
]


@pytest.fixture
def catalog(client, admin_headers):
    created = {}
    for data in CATALOG:
        response = client.post("/api/templates/", json=data, headers=admin_headers)
        assert response.status_code == 201, response.text
        created[data["name"]] = response.json()["data"]["template"]
    return created


def _names(response):
    return {t["name"] for t in response.json()["data"]["templates"]}


class TestTemplateFilters:
    def test_list_all(self, client, catalog):
        response = client.get("/api/templates/")
        assert response.status_code == 200
        assert _names(response) == set(catalog)

    def test_category_all_is_unfiltered(self, client, catalog):
        assert _names(client.get("/api/templates/?category=all")) == set(catalog)

    @pytest.mark.parametrize(
        "query",
        [
            "category=developer",
            "difficulty=beginner",
            "category=developer&difficulty=beginner",
            "featured=true",
            "premium=false",
            "featured=true&difficulty=beginner",
            "premium=true",
        ],
    )
    def test_filters_narrow_monotonically(self, client, catalog, query):
        """Adding a filter never returns a template the unfiltered list lacks."""
        everything = _names(client.get("/api/templates/"))
        narrowed = _names(client.get(f"/api/templates/?{query}"))
        assert narrowed <= everything

        # adding one more filter narrows further
        stricter = _names(client.get(f"/api/templates/?{query}&category=student"))
        assert stricter <= narrowed

    def test_category_filter(self, client, catalog):
        assert _names(client.get("/api/templates/?category=developer")) == {"Dev Dark", "Dev Light"}

    def test_combined_filters(self, client, catalog):
        response = client.get("/api/templates/?category=developer&difficulty=beginner")
        assert _names(response) == {"Dev Light"}

    def test_limit_and_offset(self, client, catalog):
        assert len(client.get("/api/templates/?limit=2").json()["data"]["templates"]) == 2
        assert len(client.get("/api/templates/?offset=3").json()["data"]["templates"]) == 2

        page = _names(client.get("/api/templates/?limit=2&offset=2"))
        assert len(page) == 2
        assert page <= set(catalog)

    def test_invalid_category(self, client):
        response = client.get("/api/templates/?category=space")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid category"

    def test_featured(self, client, catalog):
        assert _names(client.get("/api/templates/featured")) == {"Dev Dark", "Campus"}

    def test_categories_and_stats(self, client, catalog):
        categories = client.get("/api/templates/categories").json()["data"]["categories"]
        assert categories == ["creative", "developer", "professional", "student"]

        counts = client.get("/api/templates/category-stats").json()["data"]["categories"]
        assert counts == {"creative": 1, "developer": 2, "professional": 1, "student": 1}

        stats = client.get("/api/templates/stats").json()["data"]
        assert stats["total_templates"] == 5


class TestTemplateSearch:
    def test_search_name_description_and_tags(self, client, catalog):
        assert _names(client.get("/api/templates/search?q=DEV")) == {"Dev Dark", "Dev Light"}
        assert _names(client.get("/api/templates/search?q=colours")) == {"Artsy"}
        assert _names(client.get("/api/templates/search?q=corporate")) == {"Suit"}

    def test_search_with_category(self, client, catalog):
        response = client.get("/api/templates/search?q=dev&category=creative")
        assert _names(response) == set()

    @pytest.mark.parametrize("q", ["[", "]", ",", '"', '","'])
    def test_search_ignores_json_syntax_of_tags(self, client, catalog, q):
        # Artsy and Campus have no tags at all
        response = client.get("/api/templates/search", params={"q": q})
        assert response.status_code == 200
        assert _names(response) == set()

    def test_search_matches_whole_tag_elements(self, client, catalog):
        assert _names(client.get("/api/templates/search?q=REACT")) == {"Dev Dark"}
        assert _names(client.get("/api/templates/search?q=ligh")) == {"Dev Light"}
        assert _names(client.get("/api/templates/search", params={"q": "dark,react"})) == set()


class TestTemplateCounters:
    def test_rating_running_average(self, client, catalog, user_headers):
        template_id = catalog["Suit"]["id"]

        first = client.post(f"/api/templates/{template_id}/rate", json={"rating": 5}, headers=user_headers)
        assert first.status_code == 200
        assert first.json()["data"] == {"rating": 5.0, "rating_count": 1}

        second = client.post(f"/api/templates/{template_id}/rate", json={"rating": 2}, headers=user_headers)
        assert second.json()["data"] == {"rating": 3.5, "rating_count": 2}

    def test_rating_bounds(self, client, catalog, user_headers):
        url = f"/api/templates/{catalog['Suit']['id']}/rate"
        assert client.post(url, json={"rating": 0}, headers=user_headers).status_code == 400
        assert client.post(url, json={"rating": 6}, headers=user_headers).status_code == 400

    def test_rating_requires_sign_in(self, client, catalog):
        template_id = catalog["Suit"]["id"]
        response = client.post(f"/api/templates/{template_id}/rate", json={"rating": 5})
        assert response.status_code == 401

        template = client.get(f"/api/templates/{template_id}").json()["data"]["template"]
        assert template["rating_count"] == 0

    def test_list_ordered_by_rating(self, client, catalog, user_headers):
        client.post(f"/api/templates/{catalog['Campus']['id']}/rate", json={"rating": 4}, headers=user_headers)
        client.post(f"/api/templates/{catalog['Artsy']['id']}/rate", json={"rating": 5}, headers=user_headers)

        names = [t["name"] for t in client.get("/api/templates/").json()["data"]["templates"]]
        assert names[:2] == ["Artsy", "Campus"]

    def test_use_increments_downloads(self, client, catalog, user_headers):
        template_id = catalog["Dev Dark"]["id"]
        client.post(f"/api/templates/{template_id}/use", headers=user_headers)
        response = client.post(f"/api/templates/{template_id}/use")

        assert response.status_code == 200
        assert response.json()["data"]["template"]["download_count"] == 2

        popular = client.get("/api/templates/popular").json()["data"]["templates"]
        assert popular[0]["name"] == "Dev Dark"

    def test_portfolio_from_template_counts_usage(self, client, catalog, user_headers):
        template_id = catalog["Campus"]["id"]
        response = client.post(
            "/api/portfolios/", json={"title": "From template", "templateId": template_id}, headers=user_headers
        )
        assert response.status_code == 201
        assert response.json()["data"]["portfolio"]["template_id"] == template_id

        template = client.get(f"/api/templates/{template_id}").json()["data"]["template"]
        assert template["download_count"] == 1

    def test_unknown_template(self, client, user_headers):
        assert client.get("/api/templates/missing").status_code == 404
        assert client.post("/api/templates/missing/use").status_code == 404
        assert client.post("/api/templates/missing/rate", json={"rating": 3}, headers=user_headers).status_code == 404


class TestTemplateAdmin:
    def test_create_requires_admin(self, client, user_headers):
        response = client.post("/api/templates/", json=CATALOG[0], headers=user_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Admin privileges required"

    def test_create_defaults(self, client, admin_headers):
        response = client.post(
            "/api/templates/", json={"name": "Bare", "category": "business"}, headers=admin_headers
        )
        template = response.json()["data"]["template"]
        assert template["difficulty"] == "beginner"
        assert template["is_featured"] is False
        assert template["is_premium"] is False
        assert template["features"] == []
        assert template["layout_config"] == {}
        assert template["rating"] == 0

    def test_update_and_delete(self, client, admin_headers, catalog):
        template_id = catalog["Suit"]["id"]

        response = client.put(
            f"/api/templates/{template_id}", json={"name": "Suit v2", "isFeatured": True}, headers=admin_headers
        )
        assert response.status_code == 200
        updated = response.json()["data"]["template"]
        assert updated["name"] == "Suit v2"
        assert updated["is_featured"] is True

        assert client.delete(f"/api/templates/{template_id}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/templates/{template_id}").status_code == 404


class TestTemplateService:
    async def test_offset_without_limit_uses_page_size(self, db):
        for i in range(13):
            await template_service.create_template(db, {"name": f"T{i}", "category": "developer"})

        assert len(await template_service.find_all(db, offset=1)) == 10
        assert len(await template_service.find_all(db)) == 13

    async def test_find_by_category(self, db):
        await template_service.create_template(db, {"name": "A", "category": "creative"})
        await template_service.create_template(db, {"name": "B", "category": "student"})

        results = await template_service.find_by_category(db, "creative")
        assert [t.name for t in results] == ["A"]


class FakeCache:
    """Dict-backed stand-in for the Redis CacheManager."""

    def __init__(self):
        self.store = {}
        self.cleared = []

    async def get(self, key, namespace="", default=None):
        return self.store.get((namespace, key), default)

    async def set(self, key, value, ttl=None, namespace=""):
        self.store[(namespace, key)] = value
        return True

    async def clear_namespace(self, namespace):
        self.cleared.append(namespace)
        keys = [k for k in self.store if k[0] == namespace]
        for key in keys:
            del self.store[key]
        return len(keys)


@pytest.fixture
def fake_cache(monkeypatch):
    cache = FakeCache()
    monkeypatch.setattr("skillweave.core.cache.cache_manager", cache)
    return cache


class TestTemplateCache:
    def test_list_is_served_from_cache(self, client, catalog, fake_cache):
        first = client.get("/api/templates/")
        assert len(fake_cache.store) == 1

        fake_cache.store[next(iter(fake_cache.store))] = []
        assert client.get("/api/templates/").json()["data"]["templates"] == []
        assert first.json()["data"]["templates"]

    def test_rating_refreshes_cached_list(self, client, catalog, fake_cache, user_headers):
        template_id = catalog["Suit"]["id"]
        client.get("/api/templates/")

        response = client.post(f"/api/templates/{template_id}/rate", json={"rating": 4}, headers=user_headers)
        assert response.status_code == 200
        assert fake_cache.cleared == ["templates"]

        templates = client.get("/api/templates/").json()["data"]["templates"]
        suit = next(t for t in templates if t["id"] == template_id)
        assert suit["rating"] == 4.0
        assert suit["rating_count"] == 1

    def test_failed_write_leaves_cache_alone(self, client, catalog, fake_cache, user_headers):
        client.get("/api/templates/")
        response = client.post("/api/templates/missing/rate", json={"rating": 4}, headers=user_headers)

        assert response.status_code == 404
        assert fake_cache.cleared == []
        assert len(fake_cache.store) == 1

    async def test_invalidation_waits_for_commit(self, db, fake_cache):
        await fake_cache.set("list:x", ["stale"], namespace="templates")
        template = await template_service.create_template(db, {"name": "Fresh", "category": "developer"})
        await template_service.update_rating(db, template.id, 5)

        assert fake_cache.cleared == []
        assert db.info[STALE_NAMESPACES_KEY] == {"templates"}

        await db.commit()
        assert await clear_stale(db) == 1
        assert fake_cache.cleared == ["templates"]
        assert fake_cache.store == {}
        assert STALE_NAMESPACES_KEY not in db.info

    async def test_rollback_discards_invalidation(self, db, fake_cache):
        await fake_cache.set("list:x", ["cached"], namespace="templates")
        await template_service.create_template(db, {"name": "Doomed", "category": "developer"})

        await db.rollback()
        discard_stale(db)

        assert await clear_stale(db) == 0
        assert fake_cache.cleared == []
        assert len(fake_cache.store) == 1
