"""
Unit tests for the render-and-cache flow.
"""

from unittest.mock import MagicMock

import pytest

from service_pages.app.caching.keys import Section
from service_pages.app.caching.page_cache import PageCache
from service_pages.app.caching.renderer import FilePageSource, PageRenderer, PageRoute
from service_pages.app.exceptions import PageNotFoundError, RenderError
from shared.metrics import MetricsCollector


class RecordingSource:
    """Page source that renders a predictable body and records calls."""

    def __init__(self):
        self.calls = []
        self.version = 1

    def render(self, route: PageRoute) -> str:
        self.calls.append(route)
        return f"<html>{route.display_path} v{self.version}</html>"


class TestPageRoute:
    """Test cases for PageRoute cache keys."""

    def test_section_index(self):
        assert PageRoute(Section.PRODUCTS).cache_key == "page:products"

    def test_product_category_and_detail(self):
        assert PageRoute(Section.PRODUCTS, ("detectors",)).cache_key == "page:products:detectors"
        assert PageRoute(Section.PRODUCTS, ("detectors", "alpha")).cache_key == "page:products:detectors:alpha"

    def test_blog_listing_is_paginated(self):
        assert PageRoute(Section.BLOG).cache_key == "page:blog:page:1:category:"
        route = PageRoute(Section.BLOG, params={"page": "2", "category": "news"})
        assert route.cache_key == "page:blog:page:2:category:news"

    @pytest.mark.parametrize("raw", ["0", "-4", "abc", ""])
    def test_invalid_page_number_falls_back_to_first_page(self, raw):
        route = PageRoute(Section.BLOG, params={"page": raw})
        assert route.cache_key == "page:blog:page:1:category:"

    def test_blog_post(self):
        assert PageRoute(Section.BLOG, ("my-slug",)).cache_key == "page:blog:post:my-slug"

    def test_filtered_listings(self):
        assert PageRoute(Section.CASE_STUDIES, params={"industry": "4"}).cache_key == "page:case-studies:industry:4"
        assert PageRoute(Section.WHITEPAPERS, params={"topic": "2"}).cache_key == "page:whitepapers:topic:2"

    def test_unrelated_params_do_not_change_key(self):
        route = PageRoute(Section.SOLUTIONS, params={"utm_source": "newsletter"})
        assert route.cache_key == "page:solutions"

    def test_preview_key(self):
        assert PageRoute(Section.BLOG, ("draft",), preview=True).cache_key == "preview:blog:draft"


class TestPageRenderer:
    """Test cases for PageRenderer."""

    @pytest.fixture
    def cache(self):
        return PageCache()

    @pytest.fixture
    def source(self):
        return RecordingSource()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("pages")

    @pytest.fixture
    def renderer(self, cache, source, metrics):
        return PageRenderer(cache, source, metrics=metrics)

    def test_miss_renders_and_caches(self, renderer, cache, source):
        page = renderer.render(PageRoute(Section.ABOUT))

        assert page.cache_hit is False
        assert page.cache_key == "page:about"
        assert page.html == "<html>about v1</html>"
        assert cache.get("page:about") == ("<html>about v1</html>", True)
        assert len(source.calls) == 1

    def test_hit_skips_source(self, renderer, source):
        renderer.render(PageRoute(Section.ABOUT))
        source.version = 2

        page = renderer.render(PageRoute(Section.ABOUT))

        assert page.cache_hit is True
        assert page.html == "<html>about v1</html>"
        assert len(source.calls) == 1

    def test_uses_section_ttl(self, cache, source):
        cache = MagicMock(wraps=cache)
        renderer = PageRenderer(cache, source)

        renderer.render(PageRoute(Section.SOLUTIONS, ("smart-factory",)))

        cache.set.assert_called_once_with(
            "page:solutions:smart-factory", "<html>solutions/smart-factory v1</html>", 1800
        )

    @pytest.mark.parametrize("path,ttl", [
        ((), 600),
        (("detectors",), 600),
        (("detectors", "alpha"), 1800),
    ])
    def test_product_category_is_cached_as_listing(self, cache, source, path, ttl):
        cache = MagicMock(wraps=cache)
        renderer = PageRenderer(cache, source)

        renderer.render(PageRoute(Section.PRODUCTS, path))

        assert cache.set.call_args[0][2] == ttl

    def test_ttl_overrides(self, cache, source):
        cache = MagicMock(wraps=cache)
        renderer = PageRenderer(cache, source, ttl_overrides={"blog": 30})

        renderer.render(PageRoute(Section.BLOG))

        cache.set.assert_called_once_with("page:blog:page:1:category:", "<html>blog v1</html>", 30)

    def test_failed_render_is_not_cached(self, cache, metrics):
        source = MagicMock()
        source.render.side_effect = RuntimeError("template exploded")
        renderer = PageRenderer(cache, source, metrics=metrics)

        with pytest.raises(RenderError) as exc_info:
            renderer.render(PageRoute(Section.PARTNERS))

        assert exc_info.value.status_code == 500
        assert exc_info.value.details["reason"] == "template exploded"
        assert len(cache) == 0

    def test_not_found_propagates_unchanged(self, cache):
        source = MagicMock()
        source.render.side_effect = PageNotFoundError("blog/missing")
        renderer = PageRenderer(cache, source)

        with pytest.raises(PageNotFoundError):
            renderer.render(PageRoute(Section.BLOG, ("missing",)))

        assert len(cache) == 0

    def test_preview_always_renders_and_never_caches(self, renderer, cache, source):
        route = PageRoute(Section.BLOG, ("draft",), preview=True)

        first = renderer.render(route)
        source.version = 2
        second = renderer.render(route)

        assert first.cache_hit is False and second.cache_hit is False
        assert second.html == "<html>blog/draft v2</html>"
        assert second.cache_key is None
        assert len(cache) == 0
        assert len(source.calls) == 2

    def test_rerenders_after_invalidation(self, renderer, cache, source):
        renderer.render(PageRoute(Section.PRODUCTS))
        cache.delete_by_prefix("page:products")
        source.version = 2

        page = renderer.render(PageRoute(Section.PRODUCTS))

        assert page.cache_hit is False
        assert page.html == "<html>products v2</html>"

    def test_metrics(self, renderer, metrics):
        renderer.render(PageRoute(Section.BLOG, ("a",)))
        renderer.render(PageRoute(Section.BLOG, ("a",)))
        renderer.render(PageRoute(Section.BLOG, ("a",)))

        registry = metrics.registry
        assert registry.get_sample_value("page_cache_misses_total", {"section": "blog"}) == 1
        assert registry.get_sample_value("page_cache_hits_total", {"section": "blog"}) == 2
        assert registry.get_sample_value("page_cache_entries") == 1
        assert registry.get_sample_value("page_render_duration_seconds_count", {"section": "blog"}) == 1


class TestFilePageSource:
    """Test cases for FilePageSource."""

    @pytest.fixture
    def root(self, tmp_path):
        (tmp_path / "about").mkdir()
        (tmp_path / "about" / "index.html").write_text("<h1>About</h1>", encoding="utf-8")
        (tmp_path / "products" / "detectors").mkdir(parents=True)
        (tmp_path / "products" / "detectors" / "alpha.html").write_text("<h1>Alpha</h1>", encoding="utf-8")
        (tmp_path / "secret.html").write_text("nope", encoding="utf-8")
        return tmp_path

    def test_renders_section_index(self, root):
        assert FilePageSource(root).render(PageRoute(Section.ABOUT)) == "<h1>About</h1>"

    def test_renders_nested_detail(self, root):
        route = PageRoute(Section.PRODUCTS, ("detectors", "alpha"))
        assert FilePageSource(root).render(route) == "<h1>Alpha</h1>"

    def test_missing_page(self, root):
        with pytest.raises(PageNotFoundError):
            FilePageSource(root).render(PageRoute(Section.BLOG, ("missing",)))

    @pytest.mark.parametrize("path", [("..", "secret"), ("",), ("a/b",)])
    def test_rejects_paths_outside_section(self, root, path):
        with pytest.raises(PageNotFoundError):
            FilePageSource(root).render(PageRoute(Section.ABOUT, path))
