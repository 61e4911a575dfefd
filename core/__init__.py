"""
Core shared utilities for the marketplace back office.

- db: pooled DB-API connections (SQLite by default, PostgreSQL via DATABASE_URL)
- errors: API error hierarchy and Flask error handlers
"""
