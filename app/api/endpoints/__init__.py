# File: app/api/endpoints/__init__.py
"""
API endpoints package for TaskCadence.

This package contains the endpoint modules for recurring tasks and the
task templates they generate from.
"""

from app.api.endpoints import recurring_tasks, task_templates
