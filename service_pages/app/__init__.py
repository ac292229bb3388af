"""
Pages Service package for the CMS.

Serves the public marketing pages (home, about, products, blog, case
studies, solutions, whitepapers, partners, contact) from an in-process
cache of rendered HTML, and lets admin tooling invalidate that cache when
content changes.

Structure:
- app.main: FastAPI app, public and admin routes.
- app.caching: Page cache, key naming, render-and-cache flow, invalidation.
- app.http: Cache header middleware.
"""
