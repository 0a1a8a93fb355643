"""
TED Talk API - Backend Service

FastAPI service for TED talk records: CSV bulk import, paginated queries
and speaker influence analytics, backed by Postgres.
"""

__version__ = "1.0.0"
