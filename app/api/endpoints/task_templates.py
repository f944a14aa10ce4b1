# app/api/endpoints/task_templates.py
"""
Task Template API endpoints for TaskCadence.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleException, EntityNotFoundException
from app.db.session import get_db
from app.schemas.recurring_task import (
    TaskTemplate,
    TaskTemplateCreate,
    TaskTemplateUpdate,
)
from app.services.recurring_task_service import RecurringTaskService

router = APIRouter()


def _not_found(template_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Task template with ID {template_id} not found",
    )


@router.get("/", response_model=List[TaskTemplate])
def list_task_templates(
    *,
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(
        100, ge=1, le=1000, description="Maximum number of records to return"
    ),
    user_id: Optional[str] = Query(None, description="Filter by owner"),
):
    """
    List task templates with optional owner filter.
    """
    recurring_task_service = RecurringTaskService(db)
    return recurring_task_service.list_templates(user_id=user_id, skip=skip, limit=limit)


@router.post("/", response_model=TaskTemplate, status_code=status.HTTP_201_CREATED)
def create_task_template(
    *,
    db: Session = Depends(get_db),
    template_in: TaskTemplateCreate,
):
    """
    Create a task template used by recurring tasks.
    """
    recurring_task_service = RecurringTaskService(db)
    return recurring_task_service.create_template(template_in)


@router.get("/{template_id}", response_model=TaskTemplate)
def get_task_template(
    *,
    db: Session = Depends(get_db),
    template_id: int = Path(..., description="The ID of the task template"),
):
    """
    Get a task template by ID.
    """
    recurring_task_service = RecurringTaskService(db)
    try:
        return recurring_task_service.get_template(template_id)
    except EntityNotFoundException:
        raise _not_found(template_id)


@router.put("/{template_id}", response_model=TaskTemplate)
@router.patch("/{template_id}", response_model=TaskTemplate)
def update_task_template(
    *,
    db: Session = Depends(get_db),
    template_id: int = Path(..., description="The ID of the task template"),
    template_in: TaskTemplateUpdate,
):
    """
    Update a task template. Only the supplied fields are changed.

    Raises:
        HTTPException: If the template doesn't exist
    """
    recurring_task_service = RecurringTaskService(db)
    try:
        return recurring_task_service.update_template(template_id, template_in)
    except EntityNotFoundException:
        raise _not_found(template_id)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task_template(
    *,
    db: Session = Depends(get_db),
    template_id: int = Path(..., description="The ID of the task template"),
):
    """
    Delete a task template that no recurring task uses.

    Raises:
        HTTPException: If the template doesn't exist or is still in use
    """
    recurring_task_service = RecurringTaskService(db)
    try:
        recurring_task_service.delete_template(template_id)
    except EntityNotFoundException:
        raise _not_found(template_id)
    except BusinessRuleException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
