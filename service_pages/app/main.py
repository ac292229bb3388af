"""
Pages service for the CMS.

Serves the public marketing pages from the in-process page cache and exposes
the admin endpoints that inspect and invalidate it.
"""

from typing import Any, Dict, Optional

from fastapi import Header, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from shared.base_service import BaseService
from shared.errors import ValidationError
from shared.logging import set_admin_user

from .caching.invalidation import PageInvalidator
from .caching.keys import Section, parse_section
from .caching.page_cache import CacheSweeper, PageCache
from .caching.renderer import FilePageSource, PageRenderer, PageRoute, PageSource
from .exceptions import PageNotFoundError
from .http.headers import CacheHeadersMiddleware


class InvalidateRequest(BaseModel):
    """Body of ``POST /admin/cache/invalidate``; set exactly one target."""

    prefix: Optional[str] = None
    section: Optional[str] = None
    content_type: Optional[str] = None
    slug: Optional[str] = None


class PagesService(BaseService):
    """Pages service implementation."""

    def __init__(
        self,
        source: Optional[PageSource] = None,
        cache: Optional[PageCache] = None,
        **config_overrides: Any,
    ):
        super().__init__("pages", 8020, **config_overrides)

        self.cache = cache if cache is not None else PageCache()
        self.source = source if source is not None else FilePageSource(self.config.pages_root)
        self.renderer = PageRenderer(
            self.cache,
            self.source,
            ttl_overrides=self.config.cache_ttl_overrides,
            metrics=self.metrics,
        )
        self.invalidator = PageInvalidator(self.cache, metrics=self.metrics)

        self.sweeper: Optional[CacheSweeper] = None
        if self.config.cache_sweep_interval > 0:
            self.sweeper = CacheSweeper(self.cache, self.config.cache_sweep_interval)

        self.app.add_middleware(CacheHeadersMiddleware)
        if self.config.static_root:
            self.app.mount("/static", StaticFiles(directory=self.config.static_root), name="static")

        self._setup_admin_routes()
        self._setup_public_routes()

        self.app.state.pages_service = self

    def _setup_admin_routes(self):
        """Set up cache management routes."""

        @self.app.get("/admin/cache/stats")
        async def cache_stats():
            """Current cache counters."""
            stats = self.cache.stats().to_dict()
            stats["sweeper_running"] = bool(self.sweeper and self.sweeper.running)
            stats["sections"] = [section.value for section in Section]
            return stats

        @self.app.post("/admin/cache/invalidate")
        async def invalidate(
            body: InvalidateRequest,
            x_admin_user: Optional[str] = Header(default=None),
        ):
            """Invalidate cached pages by prefix, section or admin content type."""
            set_admin_user(x_admin_user)
            targets = [name for name in ("prefix", "section", "content_type") if getattr(body, name)]
            if len(targets) != 1:
                raise ValidationError(
                    "Exactly one of prefix, section or content_type is required",
                    {"provided": targets},
                )
            if body.slug and not body.section:
                raise ValidationError("slug is only valid together with section", {"slug": body.slug})

            if body.prefix:
                removed = self.invalidator.invalidate_prefix(body.prefix)
            elif body.section and body.slug:
                removed = self.invalidator.page_changed(body.section, body.slug)
            elif body.section:
                removed = self.invalidator.content_changed(body.section)
            else:
                removed = self.invalidator.for_content_type(body.content_type)

            return {"target": targets[0], "removed": removed}

        @self.app.post("/admin/cache/invalidate-all")
        async def invalidate_all(x_admin_user: Optional[str] = Header(default=None)):
            """Drop every cached page."""
            set_admin_user(x_admin_user)
            return {"removed": self.invalidator.invalidate_all()}

        @self.app.delete("/admin/cache/keys/{key:path}")
        async def delete_key(key: str, x_admin_user: Optional[str] = Header(default=None)):
            """Delete one cache entry by exact key."""
            set_admin_user(x_admin_user)
            deleted = self.cache.delete(key)
            self.logger.info("Deleted cache key", key=key, deleted=deleted)
            return {"key": key, "deleted": deleted}

        @self.app.post("/admin/cache/sweep")
        async def sweep():
            """Evict expired entries now."""
            removed = self.cache.sweep()
            self.metrics.set_gauge("page_cache_entries", len(self.cache))
            return {"removed": removed}

    def _setup_public_routes(self):
        """Set up public page routes.

        Handlers are plain functions so each request renders on a worker
        thread; the cache is shared by all of them.
        """

        @self.app.get("/", response_class=HTMLResponse)
        def home(request: Request):
            return self._serve(Section.HOME.value, (), request)

        @self.app.get("/preview/{section}/{slug}", response_class=HTMLResponse)
        def preview(section: str, slug: str, request: Request):
            return self._serve(section, (slug,), request, preview=True)

        @self.app.get("/products/{category}/{product}", response_class=HTMLResponse)
        def product_detail(category: str, product: str, request: Request):
            return self._serve(Section.PRODUCTS.value, (category, product), request)

        @self.app.get("/{section}", response_class=HTMLResponse)
        def section_index(section: str, request: Request):
            return self._serve(section, (), request)

        @self.app.get("/{section}/{slug}", response_class=HTMLResponse)
        def section_detail(section: str, slug: str, request: Request):
            return self._serve(section, (slug,), request)

    def _serve(self, section_name: str, path: tuple, request: Request, preview: bool = False) -> HTMLResponse:
        section = parse_section(section_name)
        if section is None or (section is Section.HOME and path):
            raise PageNotFoundError("/".join((section_name,) + path))

        route = PageRoute(
            section=section,
            path=path,
            params=dict(request.query_params),
            preview=preview,
        )
        page = self.renderer.render(route)

        response = HTMLResponse(content=page.html, status_code=200)
        if preview:
            response.headers["X-Cache"] = "BYPASS"
        else:
            response.headers["X-Cache"] = "HIT" if page.cache_hit else "MISS"
        return response

    async def on_startup(self) -> None:
        if self.sweeper:
            self.sweeper.start()
        self.logger.info("Pages service started", pages_root=self.config.pages_root)

    async def on_shutdown(self) -> None:
        if self.sweeper:
            self.sweeper.stop()
        self.logger.info("Pages service stopped")

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check pages service dependencies."""
        if self.sweeper is None:
            sweeper_status = "disabled"
        else:
            sweeper_status = "ok" if self.sweeper.running else "stopped"
        return {
            "page_cache": "ok",
            "cache_sweeper": sweeper_status,
        }


def create_app(source: Optional[PageSource] = None, cache: Optional[PageCache] = None, **config_overrides: Any):
    """Create pages service application."""
    service = PagesService(source=source, cache=cache, **config_overrides)
    return service.app


if __name__ == "__main__":
    service = PagesService()
    service.run()
