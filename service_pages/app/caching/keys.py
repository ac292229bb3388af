"""
Cache key naming for rendered pages.

Keys are ``:``-delimited and scoped by section so that invalidating
``page:<section>`` reaches every variant of that section: the index, detail
pages, and paginated or filtered listings.
"""

from enum import Enum
from typing import Dict, Optional, Tuple, Union

PAGE_NAMESPACE = "page"
PREVIEW_NAMESPACE = "preview"

KeyPart = Union[str, int, None]


class Section(str, Enum):
    """Public content sections served from the page cache."""

    HOME = "home"
    ABOUT = "about"
    PRODUCTS = "products"
    BLOG = "blog"
    CASE_STUDIES = "case-studies"
    SOLUTIONS = "solutions"
    WHITEPAPERS = "whitepapers"
    PARTNERS = "partners"
    CONTACT = "contact"


# (index TTL, detail TTL) in seconds
SECTION_TTLS: Dict[Section, Tuple[int, int]] = {
    Section.HOME: (300, 300),
    Section.ABOUT: (300, 300),
    Section.PRODUCTS: (600, 1800),
    Section.BLOG: (300, 600),
    Section.CASE_STUDIES: (600, 1800),
    Section.SOLUTIONS: (600, 1800),
    Section.WHITEPAPERS: (600, 900),
    Section.PARTNERS: (300, 300),
    Section.CONTACT: (3600, 3600),
}


def _section_name(section: Union[Section, str]) -> str:
    return section.value if isinstance(section, Section) else str(section)


def _join(namespace: str, section: Union[Section, str], parts) -> str:
    segments = [namespace, _section_name(section)]
    segments.extend(str(part) for part in parts if part is not None and part != "")
    return ":".join(segments)


def page_key(section: Union[Section, str], *parts: KeyPart) -> str:
    """Build a page cache key.

    >>> page_key(Section.PRODUCTS)
    'page:products'
    >>> page_key("products", "detectors", "alpha")
    'page:products:detectors:alpha'
    """
    return _join(PAGE_NAMESPACE, section, parts)


def section_prefix(section: Union[Section, str]) -> str:
    """Prefix matching every cached page of a section."""
    return page_key(section)


def listing_key(section: Union[Section, str], page: int, category: Optional[str] = None) -> str:
    """Key for a paginated listing; the category segment is always present.

    >>> listing_key(Section.BLOG, 2)
    'page:blog:page:2:category:'
    """
    return f"{page_key(section)}:page:{page}:category:{category or ''}"


def preview_key(section: Union[Section, str], slug: str) -> str:
    return _join(PREVIEW_NAMESPACE, section, (slug,))


def parse_section(value: str) -> Optional[Section]:
    """Return the ``Section`` named by ``value`` or ``None``."""
    try:
        return Section(value)
    except ValueError:
        return None


def ttl_for(section: Section, detail: bool = False, overrides: Optional[Dict[str, int]] = None) -> int:
    """TTL in seconds for an index or detail page of ``section``.

    ``overrides`` maps a section name, optionally suffixed with ``:detail``,
    to a TTL that replaces the default. A bare section name applies to both
    index and detail pages unless a ``:detail`` override is present.
    """
    overrides = overrides or {}
    name = section.value + (":detail" if detail else "")
    if name in overrides:
        return overrides[name]
    if detail and section.value in overrides:
        return overrides[section.value]
    index_ttl, detail_ttl = SECTION_TTLS[section]
    return detail_ttl if detail else index_ttl
