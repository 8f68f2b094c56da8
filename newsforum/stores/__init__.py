"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: DB session, ORM base, dialect-aware upserts
- Redis: short-lived payload caching

No business/ranking logic in stores - that belongs in services.
"""
