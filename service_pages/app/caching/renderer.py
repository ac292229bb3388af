"""
Render-and-cache flow shared by every public page handler.

A handler describes the request as a ``PageRoute`` and asks ``PageRenderer``
for HTML. On a hit the cached string is returned untouched; on a miss the
injected ``PageSource`` renders the page, the result is stored with the
section TTL and returned. A render that raises never reaches the cache.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple, TYPE_CHECKING, Union

from shared.errors import CMSException
from shared.logging import get_logger
from ..exceptions import PageNotFoundError, RenderError
from .keys import Section, listing_key, page_key, preview_key, ttl_for
from .page_cache import PageCache

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


# Query parameter that selects a filtered listing, per section
LISTING_FILTERS: Dict[Section, str] = {
    Section.CASE_STUDIES: "industry",
    Section.WHITEPAPERS: "topic",
}


@dataclass(frozen=True)
class PageRoute:
    """A public page request, reduced to what identifies its HTML."""

    section: Section
    path: Tuple[str, ...] = ()
    params: Dict[str, str] = field(default_factory=dict, hash=False)
    preview: bool = False

    @property
    def is_detail(self) -> bool:
        # /products/<category> is a listing
        if self.section is Section.PRODUCTS:
            return len(self.path) > 1
        return bool(self.path)

    @property
    def display_path(self) -> str:
        return "/".join((self.section.value,) + self.path)

    @property
    def page_number(self) -> int:
        try:
            page = int(self.params.get("page", 1))
        except (TypeError, ValueError):
            return 1
        return page if page > 0 else 1

    @property
    def cache_key(self) -> str:
        if self.preview:
            return preview_key(self.section, ":".join(self.path))

        if not self.path:
            if self.section is Section.BLOG:
                return listing_key(self.section, self.page_number, self.params.get("category"))
            filter_name = LISTING_FILTERS.get(self.section)
            filter_value = self.params.get(filter_name) if filter_name else None
            if filter_value:
                return page_key(self.section, filter_name, filter_value)
            return page_key(self.section)

        if self.section is Section.BLOG:
            return page_key(self.section, "post", *self.path)
        return page_key(self.section, *self.path)


@dataclass
class RenderedPage:
    html: str
    cache_hit: bool
    cache_key: Optional[str] = None


class PageSource(Protocol):
    """Produces the HTML of a page: content queries plus template rendering.

    Implementations raise ``PageNotFoundError`` when the content does not
    exist and ``RenderError`` (or any other exception) when rendering fails.
    """

    def render(self, route: PageRoute) -> str:
        ...


class FilePageSource:
    """Serves pre-rendered HTML files laid out as ``<root>/<section>/<slug>.html``.

    Section indexes live in ``<root>/<section>/index.html``. Query filters
    do not select different files.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def _resolve(self, route: PageRoute) -> Path:
        if any(part in ("", ".", "..") or "/" in part or "\\" in part for part in route.path):
            raise PageNotFoundError(route.display_path)
        if route.path:
            candidate = self.root.joinpath(route.section.value, *route.path[:-1], f"{route.path[-1]}.html")
        else:
            candidate = self.root / route.section.value / "index.html"
        candidate = candidate.resolve()
        if self.root not in candidate.parents:
            raise PageNotFoundError(route.display_path)
        return candidate

    def render(self, route: PageRoute) -> str:
        path = self._resolve(route)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise PageNotFoundError(route.display_path)
        except (OSError, UnicodeDecodeError) as exc:
            raise RenderError(route.display_path, str(exc)) from exc


class PageRenderer:
    """Serve pages from the cache, rendering and storing them on a miss."""

    def __init__(
        self,
        cache: PageCache,
        source: PageSource,
        *,
        ttl_overrides: Optional[Dict[str, int]] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.cache = cache
        self.source = source
        self.ttl_overrides = dict(ttl_overrides or {})
        self.metrics = metrics
        self.logger = get_logger("pages.renderer")

    def render(self, route: PageRoute) -> RenderedPage:
        """Return the page HTML for ``route``.

        Preview routes bypass the cache entirely so editors always see
        their latest changes.
        """
        if route.preview:
            return RenderedPage(html=self._render_from_source(route), cache_hit=False)

        key = route.cache_key
        cached, found = self.cache.get(key)
        if found:
            self._count("page_cache_hits_total", route)
            self.logger.debug("Page cache hit", key=key)
            return RenderedPage(html=cached, cache_hit=True, cache_key=key)

        self._count("page_cache_misses_total", route)
        html = self._render_from_source(route)
        ttl = ttl_for(route.section, detail=route.is_detail, overrides=self.ttl_overrides)
        self.cache.set(key, html, ttl)
        self.logger.debug("Page cached", key=key, ttl=ttl)

        if self.metrics:
            self.metrics.set_gauge("page_cache_entries", len(self.cache))
        return RenderedPage(html=html, cache_hit=False, cache_key=key)

    def _render_from_source(self, route: PageRoute) -> str:
        try:
            if self.metrics:
                with self.metrics.time_operation("page_render_duration_seconds", section=route.section.value):
                    return self.source.render(route)
            return self.source.render(route)
        except CMSException:
            raise
        except Exception as exc:
            self.logger.error("Page render failed", path=route.display_path, error=str(exc))
            raise RenderError(route.display_path, str(exc)) from exc

    def _count(self, metric_name: str, route: PageRoute) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, section=route.section.value)
