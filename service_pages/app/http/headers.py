"""
HTTP cache headers for admin pages and static assets.

Admin responses must never be stored by browsers or proxies; static assets
are served with versioned URLs and may be cached for a year.
"""

from typing import Iterable, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

STATIC_CACHE_CONTROL = "public, max-age=31536000"


def apply_no_cache(response: Response) -> Response:
    """Mark ``response`` as uncacheable for HTTP/1.1 and HTTP/1.0 caches."""
    for name, value in NO_CACHE_HEADERS.items():
        response.headers[name] = value
    return response


def apply_static_cache(response: Response) -> Response:
    """Allow any cache to keep ``response`` for one year."""
    response.headers["Cache-Control"] = STATIC_CACHE_CONTROL
    return response


def _matches(path: str, prefixes: Tuple[str, ...]) -> bool:
    return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in prefixes)


class CacheHeadersMiddleware(BaseHTTPMiddleware):
    """Set cache headers by path prefix."""

    def __init__(
        self,
        app,
        no_cache_prefixes: Iterable[str] = ("/admin",),
        static_prefixes: Iterable[str] = ("/static",),
    ):
        super().__init__(app)
        self.no_cache_prefixes = tuple(no_cache_prefixes)
        self.static_prefixes = tuple(static_prefixes)

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        path = request.url.path

        if _matches(path, self.no_cache_prefixes):
            apply_no_cache(response)
        elif _matches(path, self.static_prefixes) and response.status_code == 200:
            apply_static_cache(response)

        return response
