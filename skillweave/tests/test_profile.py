"""
Profile Details endpoint tests.
"""

from skillweave.services import profile_service


def test_profile_created_on_signup(client, user_headers):
    response = client.get("/api/profile", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["data"]["profile"]["email"] == "jane@example.com"


def test_save_profile(client, user_headers):
    response = client.put(
        "/api/profile",
        json={"title": "Engineer", "bio": "Builds things", "github": "https://github.com/jane"},
        headers=user_headers,
    )
    assert response.status_code == 200
    profile = response.json()["data"]["profile"]
    assert profile["title"] == "Engineer"
    assert profile["bio"] == "Builds things"
    # untouched fields survive
    assert profile["email"] == "jane@example.com"


def test_save_profile_after_delete_recreates(client, user_headers):
    assert client.delete("/api/profile", headers=user_headers).status_code == 200
    assert client.get("/api/profile", headers=user_headers).status_code == 404

    response = client.put("/api/profile", json={"location": "Lisbon"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["data"]["profile"]["location"] == "Lisbon"
    assert response.json()["data"]["profile"]["skills"] == []


def test_delete_missing_profile(client, user_headers):
    client.delete("/api/profile", headers=user_headers)
    response = client.delete("/api/profile", headers=user_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Profile not found"


def test_update_avatar(client, user_headers):
    response = client.put("/api/profile/avatar", json={"avatarUrl": "https://cdn.example.com/a.png"},
                          headers=user_headers)
    assert response.status_code == 200
    assert response.json()["data"]["profile"]["avatar_url"] == "https://cdn.example.com/a.png"


def test_update_skills_dedupes(client, user_headers):
    response = client.put(
        "/api/profile/skills",
        json={"skills": ["Python", " SQL ", "Python", "", "React"]},
        headers=user_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["profile"]["skills"] == ["Python", "SQL", "React"]


def test_skills_without_profile(client, user_headers):
    client.delete("/api/profile", headers=user_headers)
    response = client.put("/api/profile/skills", json={"skills": ["Go"]}, headers=user_headers)
    assert response.status_code == 404


def test_all_profiles_admin_only(client, user_headers, admin_headers):
    assert client.get("/api/profile/all", headers=user_headers).status_code == 403

    response = client.get("/api/profile/all", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["count"] == 2


async def test_update_missing_profile_returns_none(db):
    assert await profile_service.update_profile(db, "no-such-user", {"bio": "x"}) is None
    assert await profile_service.get_profile(db, "no-such-user") is None
