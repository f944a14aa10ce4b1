# File: app/db/__init__.py
"""
Database package for TaskCadence.

Exposes the session factory, the FastAPI session dependency and schema
initialization.
"""

from app.db.session import SessionLocal, engine, get_db, init_db
