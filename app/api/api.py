# app/api/api.py

from fastapi import APIRouter

from app.api.endpoints import recurring_tasks, task_templates

api_router = APIRouter()

api_router.include_router(
    recurring_tasks.router, prefix="/recurring-tasks", tags=["Recurring Tasks"]
)
api_router.include_router(
    task_templates.router, prefix="/task-templates", tags=["Task Templates"]
)
