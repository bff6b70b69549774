"""
logdepot_service

Log ingestion and query service: validated batch ingestion, filtered
listing and severity statistics over a SQLite or PostgreSQL store.
"""

__version__ = "0.1.0"
