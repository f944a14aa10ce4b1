# File: app/api/__init__.py
"""
API package for TaskCadence.

This package contains the API layer for the TaskCadence application,
including endpoints and routing configuration.
"""

from app.api import endpoints
from app.api.api import api_router
