"""
Errors raised while serving pages.
"""

from typing import Any, Dict, Optional

from shared.errors import NotFoundError, ServiceError


class PageNotFoundError(NotFoundError):
    """The page source has no content for the requested route."""

    def __init__(self, path: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Page not found: {path}", {"path": path, **(details or {})})
        self.code = "PAGE_NOT_FOUND"


class RenderError(ServiceError):
    """The page source failed to produce HTML."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to render {path}", {"path": path, "reason": reason})
        self.code = "RENDER_ERROR"
