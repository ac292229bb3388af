"""
Page caching package.

Rendered HTML is cached per page with short TTLs; admin mutations
invalidate whole sections by key prefix.
"""
