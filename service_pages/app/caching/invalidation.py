"""
Cache invalidation hooks for admin content mutations.

Admin handlers call these after a successful create, update or delete so
the affected public pages are re-rendered on their next request. Anything
a hook misses (composite pages such as the homepage) ages out by TTL.
"""

from typing import Dict, Optional, TYPE_CHECKING, Union

from shared.errors import ValidationError
from shared.logging import get_logger
from .keys import PAGE_NAMESPACE, Section, page_key, parse_section, section_prefix
from .page_cache import PageCache

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


# Admin content type -> public section whose pages render it
CONTENT_SECTIONS: Dict[str, Section] = {
    "about": Section.ABOUT,
    "products": Section.PRODUCTS,
    "product_categories": Section.PRODUCTS,
    "blog_posts": Section.BLOG,
    "blog_categories": Section.BLOG,
    "blog_tags": Section.BLOG,
    "blog_authors": Section.BLOG,
    "case_studies": Section.CASE_STUDIES,
    "industries": Section.CASE_STUDIES,
    "solutions": Section.SOLUTIONS,
    "whitepapers": Section.WHITEPAPERS,
    "whitepaper_topics": Section.WHITEPAPERS,
    "partners": Section.PARTNERS,
    "partner_tiers": Section.PARTNERS,
    "contact": Section.CONTACT,
}


class PageInvalidator:
    """Removes cached pages made stale by content changes."""

    def __init__(self, cache: PageCache, metrics: Optional["MetricsCollector"] = None):
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("pages.invalidator")

    def content_changed(self, section: Union[Section, str]) -> int:
        """Invalidate every cached page of ``section``."""
        resolved = self._resolve_section(section)
        removed = self.cache.delete_by_prefix(section_prefix(resolved))
        self._record("section", removed)
        self.logger.info("Invalidated section pages", section=resolved.value, removed=removed)
        return removed

    def page_changed(self, section: Union[Section, str], slug: str) -> int:
        """Invalidate one detail page and the section index that lists it.

        The blog index is cached per page and category, so every blog
        listing is dropped. Filtered listings of other sections are left to
        expire by TTL.
        """
        resolved = self._resolve_section(section)
        removed = 0
        if resolved is Section.BLOG:
            keys = (page_key(resolved, "post", slug),)
            removed += self.cache.delete_by_prefix(page_key(resolved, "page") + ":")
        else:
            keys = (page_key(resolved, slug), page_key(resolved))
        for key in keys:
            if self.cache.delete(key):
                removed += 1
        self._record("page", removed)
        self.logger.info("Invalidated page", section=resolved.value, slug=slug, removed=removed)
        return removed

    def for_content_type(self, content_type: str) -> int:
        """Invalidate the section rendering an admin content type."""
        section = CONTENT_SECTIONS.get(content_type)
        if section is None:
            raise ValidationError(
                f"Unknown content type: {content_type}",
                {"content_type": content_type, "known": sorted(CONTENT_SECTIONS)},
            )
        return self.content_changed(section)

    def invalidate_prefix(self, prefix: str) -> int:
        """Invalidate every key starting with ``prefix``.

        An empty prefix is rejected; use ``invalidate_all`` to drop everything.
        """
        if not prefix:
            raise ValidationError("Prefix must not be empty", {"prefix": prefix})
        removed = self.cache.delete_by_prefix(prefix)
        self._record("prefix", removed)
        self.logger.info("Invalidated cache prefix", prefix=prefix, removed=removed)
        return removed

    def invalidate_all(self) -> int:
        """Invalidate every cached page."""
        removed = self.cache.delete_by_prefix(f"{PAGE_NAMESPACE}:")
        self._record("all", removed)
        self.logger.info("Invalidated all pages", removed=removed)
        return removed

    def _resolve_section(self, section: Union[Section, str]) -> Section:
        if isinstance(section, Section):
            return section
        resolved = parse_section(section)
        if resolved is None:
            raise ValidationError(f"Unknown section: {section}", {"section": section})
        return resolved

    def _record(self, reason: str, removed: int) -> None:
        if not self.metrics:
            return
        if removed:
            self.metrics.increment_counter("page_cache_invalidations_total", removed, reason=reason)
        self.metrics.set_gauge("page_cache_entries", len(self.cache))
