# app/api/endpoints/recurring_tasks.py
"""
Recurring Tasks API endpoints for TaskCadence.

This module provides endpoints for managing recurring tasks, including
creation, retrieval, occurrence previews and task generation.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Path, status
from sqlalchemy.orm import Session

from app.core.events import global_event_bus
from app.core.exceptions import (
    BusinessRuleException,
    EntityNotFoundException,
    RecurrenceException,
)
from app.db.session import get_db
from app.schemas.recurring_task import (
    GenerateTasksRequest,
    GenerateTasksResponse,
    RecurrencePreviewRequest,
    RecurrencePreviewResponse,
    RecurringTask,
    RecurringTaskCreate,
    RecurringTaskUpdate,
    RecurringTaskWithDetails,
)
from app.services.recurring_task_service import RecurringTaskService

router = APIRouter()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _bad_request(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _not_found(recurring_task_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Recurring task with ID {recurring_task_id} not found",
    )


@router.get("/", response_model=List[RecurringTask])
def list_recurring_tasks(
    *,
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(
        100, ge=1, le=1000, description="Maximum number of records to return"
    ),
    user_id: Optional[str] = Query(None, description="Filter by owner"),
    is_active: Optional[bool] = Query(None, description="Filter by active status"),
    preview: bool = Query(False, description="Include upcoming occurrences"),
):
    """
    List recurring tasks ordered by next due date.

    Args:
        db: Database session
        skip: Number of records to skip for pagination
        limit: Maximum number of records to return
        user_id: Optional filter by owner
        is_active: Optional filter by active status
        preview: Attach upcoming occurrences to each schedule

    Returns:
        List of recurring task records
    """
    recurring_task_service = RecurringTaskService(db, event_bus=global_event_bus)

    filters = {}
    if user_id:
        filters["user_id"] = user_id
    if is_active is not None:
        filters["is_active"] = is_active

    return recurring_task_service.list_recurring_tasks(
        skip=skip, limit=limit, preview=preview, **filters
    )


@router.post("/", response_model=RecurringTask, status_code=status.HTTP_201_CREATED)
def create_recurring_task(
    *,
    db: Session = Depends(get_db),
    task_in: RecurringTaskCreate,
):
    """
    Create a new recurring task.

    Raises:
        HTTPException: If the template doesn't exist or the pattern is invalid
    """
    recurring_task_service = RecurringTaskService(db, event_bus=global_event_bus)
    try:
        return recurring_task_service.create_recurring_task(task_in, now=_utcnow())
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (BusinessRuleException, RecurrenceException) as e:
        raise _bad_request(e)


@router.post("/preview", response_model=RecurrencePreviewResponse)
def preview_recurrence(
    *,
    db: Session = Depends(get_db),
    preview_in: RecurrencePreviewRequest,
):
    """
    Preview upcoming occurrences for a recurrence pattern.

    An invalid pattern yields an empty list rather than an error.
    """
    recurring_task_service = RecurringTaskService(db)
    return {"occurrences": recurring_task_service.preview_occurrences(preview_in)}


@router.post("/generate", response_model=GenerateTasksResponse)
def generate_tasks(
    *,
    db: Session = Depends(get_db),
    generate_in: Optional[GenerateTasksRequest] = None,
) -> Dict[str, Any]:
    """
    Generate tasks for due recurring tasks.

    Processes every schedule whose next due date has passed, or only the
    schedules listed in task_ids. Schedules that fail are reported in
    `failures` without stopping the batch.
    """
    generate_in = generate_in or GenerateTasksRequest()
    recurring_task_service = RecurringTaskService(db, event_bus=global_event_bus)
    return recurring_task_service.generate_due_tasks(
        now=_utcnow(), user_id=generate_in.user_id, task_ids=generate_in.task_ids
    )


@router.get("/{recurring_task_id}", response_model=RecurringTaskWithDetails)
def get_recurring_task(
    *,
    db: Session = Depends(get_db),
    recurring_task_id: int = Path(
        ..., description="The ID of the recurring task to retrieve"
    ),
):
    """
    Get detailed information about a specific recurring task.

    Raises:
        HTTPException: If the recurring task doesn't exist
    """
    recurring_task_service = RecurringTaskService(db)
    try:
        return recurring_task_service.get_recurring_task_with_details(recurring_task_id)
    except EntityNotFoundException:
        raise _not_found(recurring_task_id)


@router.patch("/{recurring_task_id}", response_model=RecurringTask)
def update_recurring_task(
    *,
    db: Session = Depends(get_db),
    recurring_task_id: int = Path(
        ..., description="The ID of the recurring task to update"
    ),
    task_in: RecurringTaskUpdate,
):
    """
    Update a recurring task.

    Raises:
        HTTPException: If the recurring task doesn't exist or the update is invalid
    """
    recurring_task_service = RecurringTaskService(db, event_bus=global_event_bus)
    try:
        return recurring_task_service.update_recurring_task(recurring_task_id, task_in)
    except EntityNotFoundException as e:
        if e.details.get("entity_type") == "RecurringTask":
            raise _not_found(recurring_task_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (BusinessRuleException, RecurrenceException) as e:
        raise _bad_request(e)


@router.delete("/{recurring_task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recurring_task(
    *,
    db: Session = Depends(get_db),
    recurring_task_id: int = Path(
        ..., description="The ID of the recurring task to delete"
    ),
):
    """
    Delete a recurring task. Tasks it already generated are kept.

    Raises:
        HTTPException: If the recurring task doesn't exist
    """
    recurring_task_service = RecurringTaskService(db, event_bus=global_event_bus)
    try:
        recurring_task_service.delete_recurring_task(recurring_task_id)
    except EntityNotFoundException:
        raise _not_found(recurring_task_id)
