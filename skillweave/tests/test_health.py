"""
System endpoint tests: API overview, health check and the Supabase probe.
"""

import httpx
import pytest
from pydantic import ValidationError

from skillweave import config
from skillweave.config import settings
from skillweave.services import supabase_probe

RealAsyncClient = httpx.AsyncClient


@pytest.fixture
def supabase_env(monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_URL", "https://project.supabase.co/")
    monkeypatch.setattr(settings, "SUPABASE_ANON_KEY", "anon-key")


def _mock_transport(monkeypatch, handler):
    def client_factory(**kwargs):
        return RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(supabase_probe.httpx, "AsyncClient", client_factory)


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["endpoints"]["portfolios"] == "/api/portfolios"
    assert body["health_check"] == "/api/health"


def test_health_without_supabase(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["environment"] == "test"
    assert body["services"]["database"] == "connected"
    assert body["services"]["cache"] == "disabled"
    assert body["services"]["supabase"] == {"configured": False, "reachable": None, "status_code": None}


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json()["success"] is False


async def test_probe_sends_anon_key(monkeypatch, supabase_env):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["apikey"] = request.headers.get("apikey")
        seen["authorization"] = request.headers.get("authorization")
        return httpx.Response(200, json={})

    _mock_transport(monkeypatch, handler)

    result = await supabase_probe.probe_supabase()
    assert result == {"configured": True, "reachable": True, "status_code": 200}
    assert seen["url"] == "https://project.supabase.co/rest/v1/"
    assert seen["apikey"] == "anon-key"
    assert seen["authorization"] == "Bearer anon-key"


async def test_probe_server_error(monkeypatch, supabase_env):
    _mock_transport(monkeypatch, lambda request: httpx.Response(503))

    result = await supabase_probe.probe_supabase()
    assert result["reachable"] is False
    assert result["status_code"] == 503


async def test_probe_connection_error(monkeypatch, supabase_env):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    _mock_transport(monkeypatch, handler)

    result = await supabase_probe.probe_supabase()
    assert result == {"configured": True, "reachable": False, "status_code": None}


def test_large_responses_are_gzipped(client):
    response = client.get("/openapi.json", headers={"Accept-Encoding": "gzip"})
    assert response.status_code == 200
    assert response.headers["content-encoding"] == "gzip"
    assert response.json()["info"]["title"] == settings.APP_NAME


def test_small_responses_are_not_compressed(client):
    response = client.get("/", headers={"Accept-Encoding": "gzip"})
    assert response.status_code == 200
    assert "content-encoding" not in response.headers


@pytest.mark.parametrize(
    "environment, log_level, cache_ttl",
    [("production", "WARNING", 600), ("development", "DEBUG", 60)],
)
def test_environment_settings(monkeypatch, environment, log_level, cache_ttl):
    monkeypatch.setenv("ENVIRONMENT", environment)
    monkeypatch.setenv("SECRET_KEY", "a-real-secret")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("CACHE_TTL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    loaded = config.get_environment_settings()
    assert loaded.ENVIRONMENT == environment
    assert loaded.LOG_LEVEL == log_level
    assert loaded.CACHE_TTL == cache_ttl


def test_production_refuses_default_secret(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("SECRET_KEY", config.DEFAULT_SECRET_KEY)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValidationError):
        config.get_environment_settings()
