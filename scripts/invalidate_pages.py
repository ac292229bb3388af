#!/usr/bin/env python3
"""
Invalidate cached public pages on a running pages service.

Calls the admin invalidate endpoint so content changed outside the admin
panel (bulk imports, direct database edits) shows up without waiting for
TTL expiry.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, Optional

import httpx


def build_payload(
    *,
    prefix: Optional[str],
    section: Optional[str],
    content_type: Optional[str],
    slug: Optional[str],
) -> Dict[str, Any]:
    """Build the invalidate request body from CLI arguments."""
    payload: Dict[str, Any] = {}
    if prefix:
        payload["prefix"] = prefix
    if section:
        payload["section"] = section
    if content_type:
        payload["content_type"] = content_type
    if slug:
        payload["slug"] = slug
    return payload


async def invalidate(
    *,
    pages_url: str,
    payload: Dict[str, Any],
    invalidate_all: bool,
    admin_user: str,
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Send the invalidation request and return the service's response body."""
    headers = {"X-Admin-User": admin_user}
    async with httpx.AsyncClient(base_url=pages_url, timeout=timeout, transport=transport) as client:
        if invalidate_all:
            response = await client.post("/admin/cache/invalidate-all", headers=headers)
        else:
            response = await client.post("/admin/cache/invalidate", json=payload, headers=headers)
        response.raise_for_status()
        return response.json()


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Invalidate cached pages on the pages service.")
    parser.add_argument("--pages-url", default=os.getenv("CMS_PAGES_SERVICE_URL", "http://localhost:8020"), help="Pages service URL")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--prefix", help="Raw cache key prefix, e.g. page:products")
    target.add_argument("--section", help="Public section, e.g. blog or case-studies")
    target.add_argument("--content-type", help="Admin content type, e.g. blog_tags")
    target.add_argument("--all", dest="invalidate_all", action="store_true", help="Drop every cached page")
    parser.add_argument("--slug", help="With --section: invalidate one detail page and the section index")
    parser.add_argument("--admin-user", default=os.getenv("USER", "cli"), help="Recorded in the service logs")
    args = parser.parse_args(argv)
    if args.slug and not args.section:
        parser.error("--slug requires --section")
    return args


def main(argv=None) -> int:
    args = _parse_args(argv)
    payload = build_payload(
        prefix=args.prefix,
        section=args.section,
        content_type=args.content_type,
        slug=args.slug,
    )
    try:
        result = asyncio.run(
            invalidate(
                pages_url=args.pages_url,
                payload=payload,
                invalidate_all=args.invalidate_all,
                admin_user=args.admin_user,
            )
        )
    except KeyboardInterrupt:
        return 130
    except httpx.HTTPError as exc:
        print(f"[invalidate-pages] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
