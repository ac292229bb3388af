"""
Unit tests for cache header middleware.
"""

import pytest
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from service_pages.app.http.headers import (
    NO_CACHE_HEADERS,
    STATIC_CACHE_CONTROL,
    CacheHeadersMiddleware,
    apply_no_cache,
)


class TestCacheHeadersMiddleware:
    """Test cases for CacheHeadersMiddleware."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        app.add_middleware(CacheHeadersMiddleware)

        @app.get("/admin/products")
        async def admin_products():
            return PlainTextResponse("admin")

        @app.get("/administrators")
        async def administrators():
            return PlainTextResponse("not admin")

        @app.get("/static/app.v1.js")
        async def asset():
            return PlainTextResponse("js")

        @app.get("/blog")
        async def blog():
            return PlainTextResponse("blog")

        return TestClient(app)

    def test_admin_responses_are_not_cacheable(self, client):
        response = client.get("/admin/products")

        for name, value in NO_CACHE_HEADERS.items():
            assert response.headers[name] == value

    def test_prefix_matches_whole_segments(self, client):
        response = client.get("/administrators")

        assert "Pragma" not in response.headers

    def test_static_assets_are_cached_for_a_year(self, client):
        response = client.get("/static/app.v1.js")

        assert response.headers["Cache-Control"] == STATIC_CACHE_CONTROL

    def test_missing_static_asset_is_not_marked_cacheable(self, client):
        response = client.get("/static/missing.js")

        assert response.status_code == 404
        assert response.headers.get("Cache-Control") != STATIC_CACHE_CONTROL

    def test_public_pages_untouched(self, client):
        response = client.get("/blog")

        assert "Cache-Control" not in response.headers

    def test_apply_no_cache_overrides_existing_header(self):
        response = PlainTextResponse("x", headers={"Cache-Control": "public, max-age=60"})

        apply_no_cache(response)

        assert response.headers["Cache-Control"] == NO_CACHE_HEADERS["Cache-Control"]
        assert response.headers["Expires"] == "0"
