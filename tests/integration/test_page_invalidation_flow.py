"""
Integration tests for the page caching and invalidation flow.

Runs the pages service against real page files on disk.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from service_pages.app.main import PagesService


def write_page(root, relative, html):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding="utf-8")


class TestPageInvalidationFlow:
    """End-to-end cache behaviour through HTTP."""

    @pytest.fixture
    def pages_root(self, tmp_path):
        write_page(tmp_path, "products/index.html", "<h1>Products v1</h1>")
        write_page(tmp_path, "products/detectors/alpha.html", "<h1>Alpha v1</h1>")
        write_page(tmp_path, "blog/index.html", "<h1>Blog</h1>")
        write_page(tmp_path, "blog/hello.html", "<h1>Hello v1</h1>")
        return tmp_path

    @pytest.fixture
    def service(self, pages_root):
        return PagesService(pages_root=str(pages_root), cache_sweep_interval=0)

    @pytest.fixture
    def client(self, service):
        with TestClient(service.app) as client:
            yield client

    def test_edit_is_visible_after_section_invalidation(self, client, pages_root):
        assert client.get("/products").headers["X-Cache"] == "MISS"
        assert client.get("/products").headers["X-Cache"] == "HIT"

        write_page(pages_root, "products/index.html", "<h1>Products v2</h1>")
        stale = client.get("/products")
        assert stale.text == "<h1>Products v1</h1>"

        response = client.post(
            "/admin/cache/invalidate",
            json={"section": "products"},
            headers={"X-Admin-User": "editor"},
        )
        assert response.json()["removed"] == 1

        fresh = client.get("/products")
        assert fresh.headers["X-Cache"] == "MISS"
        assert fresh.text == "<h1>Products v2</h1>"

    def test_section_invalidation_leaves_other_sections(self, client):
        client.get("/products")
        client.get("/products/detectors/alpha")
        client.get("/blog/hello")

        removed = client.post("/admin/cache/invalidate", json={"section": "products"}).json()["removed"]

        assert removed == 2
        assert client.get("/blog/hello").headers["X-Cache"] == "HIT"

    def test_single_page_invalidation(self, client, pages_root):
        client.get("/blog")
        client.get("/blog/hello")
        write_page(pages_root, "blog/hello.html", "<h1>Hello v2</h1>")

        client.post("/admin/cache/invalidate", json={"section": "blog", "slug": "hello"})

        assert client.get("/blog/hello").text == "<h1>Hello v2</h1>"
        assert client.get("/blog").headers["X-Cache"] == "MISS"

    def test_concurrent_requests_share_one_cache(self, client, service):
        paths = ["/products", "/products/detectors/alpha", "/blog", "/blog/hello"] * 25

        with ThreadPoolExecutor(max_workers=8) as pool:
            responses = list(pool.map(client.get, paths))

        assert all(response.status_code == 200 for response in responses)
        assert len(service.cache) == 4
        stats = client.get("/admin/cache/stats").json()
        assert stats["hits"] + stats["misses"] == len(paths)

    def test_invalidation_during_concurrent_reads(self, client):
        def read(_):
            return client.get("/products").status_code

        def invalidate(_):
            return client.post("/admin/cache/invalidate", json={"section": "products"}).status_code

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(read if i % 5 else invalidate, i) for i in range(60)]
            statuses = [future.result() for future in futures]

        assert set(statuses) == {200}
        assert client.get("/products").text == "<h1>Products v1</h1>"
