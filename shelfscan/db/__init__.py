"""
shelfscan.db - database engine, session factory, and SQLModel tables.

Usage:
    from shelfscan.db import get_engine, init_db
    from shelfscan.db.models import BookRow, SubscriptionRow
"""

from shelfscan.db.engine import create_db_engine, get_engine, get_session, init_db, reset_engine

__all__ = ["create_db_engine", "get_engine", "get_session", "init_db", "reset_engine"]
