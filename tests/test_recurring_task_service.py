# tests/test_recurring_task_service.py
from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from app.core.events import RecurringTaskCompleted, RecurringTaskCreated, RecurringTaskGenerated
from app.core.exceptions import (
    BusinessRuleException,
    EntityNotFoundException,
    InvalidPatternError,
    MalformedSerializedPatternError,
)
from app.db.models import RecurringTask, Task
from app.schemas.recurring_task import (
    RecurrencePreviewRequest,
    RecurringTaskCreate,
    RecurringTaskUpdate,
    TaskTemplateCreate,
    TaskTemplateUpdate,
)
from app.services.recurring_task_service import RecurringTaskService

USER_ID = "user-1"
NOW = datetime(2024, 1, 10, 12, 0)


@pytest.fixture()
def service(db_session, event_bus):
    return RecurringTaskService(db_session, event_bus=event_bus)


@pytest.fixture()
def template(service):
    return service.create_template(
        TaskTemplateCreate(
            user_id=USER_ID,
            name="Water the plants",
            description="Both balconies",
            priority="high",
            estimated_duration=15,
        )
    )


@pytest.fixture()
def published(event_bus):
    events = []
    for event_type in (RecurringTaskCreated, RecurringTaskGenerated, RecurringTaskCompleted):
        event_bus.subscribe(event_type, events.append)
    return events


def make_schedule(service, template, **kwargs):
    data = {
        "user_id": USER_ID,
        "template_id": template.id,
        "frequency": "DAILY",
        "next_due_date": datetime(2024, 1, 1, 9, 0),
    }
    data.update(kwargs)
    return service.create_recurring_task(RecurringTaskCreate(**data), now=NOW)


def corrupt(db_session, recurring_task_id, **values):
    """Write column values directly, bypassing model validation."""
    db_session.execute(
        update(RecurringTask).where(RecurringTask.id == recurring_task_id).values(**values)
    )
    db_session.commit()


class TestTemplates:
    def test_create_and_list(self, service, template):
        service.create_template(TaskTemplateCreate(user_id="user-2", name="Other"))

        assert [t.id for t in service.list_templates(user_id=USER_ID)] == [template.id]
        assert len(service.list_templates()) == 2

    def test_get(self, service, template):
        assert service.get_template(template.id).name == "Water the plants"

        with pytest.raises(EntityNotFoundException):
            service.get_template(999)

    def test_update_changes_only_supplied_fields(self, service, template):
        updated = service.update_template(
            template.id, TaskTemplateUpdate(name="Water the garden", priority="low")
        )

        assert updated.name == "Water the garden"
        assert updated.priority == "low"
        assert updated.description == "Both balconies"
        assert updated.user_id == USER_ID

    def test_update_missing(self, service):
        with pytest.raises(EntityNotFoundException):
            service.update_template(999, TaskTemplateUpdate(name="Nothing"))

    def test_generated_tasks_use_updated_template(self, service, template):
        make_schedule(service, template)
        service.update_template(template.id, TaskTemplateUpdate(name="Mist the ferns"))

        result = service.generate_due_tasks(now=NOW)

        assert result["generated_tasks"][0].title == "Mist the ferns"

    def test_delete_unused(self, service, template):
        assert service.delete_template(template.id) is True

        with pytest.raises(EntityNotFoundException):
            service.get_template(template.id)

    def test_delete_in_use_is_refused(self, service, template):
        schedule = make_schedule(service, template)
        service.update_recurring_task(schedule.id, RecurringTaskUpdate(is_active=False))
        make_schedule(service, template)

        with pytest.raises(BusinessRuleException) as exc_info:
            service.delete_template(template.id)

        details = exc_info.value.details
        assert details["rule_name"] == "TEMPLATE_IN_USE"
        assert details["recurring_tasks"] == 2
        assert details["active_recurring_tasks"] == 1
        assert service.get_template(template.id).id == template.id

    def test_delete_after_schedules_are_removed(self, service, template):
        schedule = make_schedule(service, template)
        service.delete_recurring_task(schedule.id)

        assert service.delete_template(template.id) is True


class TestCreateRecurringTask:
    def test_defaults_to_now(self, service, template, published):
        schedule = service.create_recurring_task(
            RecurringTaskCreate(user_id=USER_ID, template_id=template.id), now=NOW
        )

        assert schedule.frequency == "DAILY"
        assert schedule.interval == 1
        assert schedule.start_date == NOW
        assert schedule.next_due_date == NOW
        assert schedule.generated_count == 0
        assert schedule.is_active is True
        assert [type(e) for e in published] == [RecurringTaskCreated]
        assert published[0].recurring_task_id == schedule.id

    def test_days_of_week_are_normalized(self, service, template):
        schedule = make_schedule(
            service, template, frequency="weekly", days_of_week=[5, 1, 1]
        )

        assert schedule.frequency == "WEEKLY"
        assert schedule.days_of_week == "[1, 5]"

    def test_missing_template(self, service):
        with pytest.raises(EntityNotFoundException):
            service.create_recurring_task(
                RecurringTaskCreate(user_id=USER_ID, template_id=999), now=NOW
            )

    def test_template_of_another_user(self, service, template):
        with pytest.raises(BusinessRuleException):
            service.create_recurring_task(
                RecurringTaskCreate(user_id="user-2", template_id=template.id), now=NOW
            )

    def test_invalid_pattern(self, service, template):
        with pytest.raises(InvalidPatternError):
            make_schedule(service, template, interval=0)

        assert service.list_recurring_tasks() == []

    def test_malformed_days_of_week(self, service, template):
        with pytest.raises(MalformedSerializedPatternError):
            make_schedule(service, template, frequency="WEEKLY", days_of_week="[1,")

    def test_first_due_date_after_end_date(self, service, template):
        with pytest.raises(BusinessRuleException):
            make_schedule(
                service,
                template,
                next_due_date=datetime(2024, 2, 1),
                end_date=datetime(2024, 1, 15),
            )


class TestReadUpdateDelete:
    def test_list_is_ordered_by_next_due_date(self, service, template):
        later = make_schedule(service, template, next_due_date=datetime(2024, 3, 1))
        sooner = make_schedule(service, template, next_due_date=datetime(2024, 2, 1))

        listed = service.list_recurring_tasks()

        assert [item["id"] for item in listed] == [sooner.id, later.id]
        assert "preview_occurrences" not in listed[0]

    def test_list_with_preview(self, service, template):
        make_schedule(service, template)

        listed = service.list_recurring_tasks(preview=True)

        assert listed[0]["preview_occurrences"] == [
            datetime(2024, 1, day, 9, 0) for day in range(2, 7)
        ]

    def test_details(self, service, template):
        schedule = make_schedule(service, template)
        service.generate_due_tasks(now=NOW)

        details = service.get_recurring_task_with_details(schedule.id)

        assert details["template"].id == template.id
        assert details["upcoming_occurrences"][0] == datetime(2024, 1, 3, 9, 0)
        assert [t.due_date for t in details["recent_tasks"]] == [datetime(2024, 1, 1, 9, 0)]

    def test_get_missing(self, service):
        with pytest.raises(EntityNotFoundException):
            service.get_recurring_task(42)

    def test_update_merges_pattern_fields(self, service, template):
        schedule = make_schedule(service, template, frequency="WEEKLY", days_of_week=[1])

        updated = service.update_recurring_task(
            schedule.id, RecurringTaskUpdate(interval=2)
        )

        assert updated.frequency == "WEEKLY"
        assert updated.interval == 2
        assert updated.days_of_week == "[1]"
        assert updated.next_due_date == datetime(2024, 1, 1, 9, 0)

    def test_invalid_update_is_rolled_back(self, service, template):
        schedule = make_schedule(service, template)

        with pytest.raises(InvalidPatternError):
            service.update_recurring_task(
                schedule.id, RecurringTaskUpdate(frequency="MONTHLY", day_of_month=40)
            )

        assert service.get_recurring_task(schedule.id).frequency == "DAILY"

    def test_active_schedule_needs_due_date(self, service, template):
        schedule = make_schedule(service, template)

        with pytest.raises(BusinessRuleException):
            service.update_recurring_task(
                schedule.id, RecurringTaskUpdate(next_due_date=None)
            )

        paused = service.update_recurring_task(
            schedule.id, RecurringTaskUpdate(is_active=False, next_due_date=None)
        )
        assert paused.is_active is False
        assert paused.next_due_date is None

    def test_due_date_after_end_date_is_rejected(self, service, template):
        schedule = make_schedule(service, template)

        with pytest.raises(BusinessRuleException) as exc_info:
            service.update_recurring_task(
                schedule.id, RecurringTaskUpdate(end_date=datetime(2023, 12, 31))
            )
        assert exc_info.value.details["rule_name"] == "DUE_AFTER_END"

        with pytest.raises(BusinessRuleException):
            service.update_recurring_task(
                schedule.id,
                RecurringTaskUpdate(
                    end_date=datetime(2024, 1, 15), next_due_date=datetime(2024, 2, 1)
                ),
            )

        unchanged = service.get_recurring_task(schedule.id)
        assert unchanged.end_date is None
        assert unchanged.next_due_date == datetime(2024, 1, 1, 9, 0)

    def test_paused_schedule_may_end_before_due_date(self, service, template):
        schedule = make_schedule(service, template)

        paused = service.update_recurring_task(
            schedule.id,
            RecurringTaskUpdate(is_active=False, end_date=datetime(2023, 12, 31)),
        )

        assert paused.is_active is False
        assert paused.end_date == datetime(2023, 12, 31)

    def test_delete_keeps_generated_tasks(self, service, template, db_session):
        schedule = make_schedule(service, template)
        result = service.generate_due_tasks(now=NOW)
        task_id = result["generated_tasks"][0].id

        assert service.delete_recurring_task(schedule.id) is True

        task = db_session.get(Task, task_id)
        assert task is not None
        assert task.recurring_task_id is None
        with pytest.raises(EntityNotFoundException):
            service.delete_recurring_task(schedule.id)


class TestOccurrencePreviews:
    def test_preview_defaults(self, service):
        occurrences = service.preview_occurrences(
            RecurrencePreviewRequest(start_date=datetime(2024, 1, 1, 8, 0))
        )

        assert occurrences == [datetime(2024, 1, day, 8, 0) for day in range(2, 7)]

    def test_preview_of_invalid_pattern_is_empty(self, service):
        request = RecurrencePreviewRequest(start_date=datetime(2024, 1, 1), interval=0)

        assert service.preview_occurrences(request) == []

    def test_preview_ignores_malformed_days(self, service):
        request = RecurrencePreviewRequest(
            start_date=datetime(2024, 1, 3), frequency="WEEKLY", days_of_week="oops", count=1
        )

        assert service.preview_occurrences(request) == [datetime(2024, 1, 10)]

    def test_preview_count_is_capped(self, service, monkeypatch):
        monkeypatch.setattr(
            "app.services.recurring_task_service.settings.RECURRENCE_PREVIEW_MAX_COUNT", 3
        )
        request = RecurrencePreviewRequest(start_date=datetime(2024, 1, 1), count=20)

        assert len(service.preview_occurrences(request)) == 3

    def test_upcoming_respects_remaining_count(self, service, template):
        schedule = make_schedule(service, template, occurrence_count=3)

        assert service.upcoming_occurrences(schedule) == [
            datetime(2024, 1, 2, 9, 0),
            datetime(2024, 1, 3, 9, 0),
        ]

    def test_upcoming_respects_end_date(self, service, template):
        schedule = make_schedule(service, template, end_date=datetime(2024, 1, 3, 9, 0))

        assert service.upcoming_occurrences(schedule) == [
            datetime(2024, 1, 2, 9, 0),
            datetime(2024, 1, 3, 9, 0),
        ]

    def test_upcoming_of_inactive_schedule(self, service, template):
        schedule = make_schedule(service, template)
        service.update_recurring_task(schedule.id, RecurringTaskUpdate(is_active=False))

        assert service.upcoming_occurrences(schedule) == []

    def test_preview_beyond_calendar_range_is_empty(self, service):
        request = RecurrencePreviewRequest(
            start_date=datetime(2024, 1, 1), frequency="YEARLY", interval=9000
        )

        assert service.preview_occurrences(request) == []

    def test_preview_with_huge_daily_interval_is_empty(self, service):
        request = RecurrencePreviewRequest(start_date=datetime(2024, 1, 1), interval=10**9)

        assert service.preview_occurrences(request) == []

    def test_upcoming_beyond_calendar_range_is_empty(self, service, template):
        schedule = make_schedule(service, template, frequency="YEARLY", interval=9000)

        assert service.upcoming_occurrences(schedule) == []
        assert service.list_recurring_tasks(preview=True)[0]["preview_occurrences"] == []
        assert service.get_recurring_task_with_details(schedule.id)["upcoming_occurrences"] == []


class TestGenerateDueTasks:
    def test_generates_and_advances(self, service, template, published):
        schedule = make_schedule(service, template)
        del published[:]

        result = service.generate_due_tasks(now=NOW)

        assert result["count"] == 1
        assert result["failures"] == []
        assert result["message"] == "Generated 1 tasks"
        task = result["generated_tasks"][0]
        assert task.title == "Water the plants"
        assert task.description == "Both balconies"
        assert task.priority == "high"
        assert task.estimated_duration == 15
        assert task.due_date == datetime(2024, 1, 1, 9, 0)
        assert task.recurring_task_id == schedule.id

        schedule = service.get_recurring_task(schedule.id)
        assert schedule.next_due_date == datetime(2024, 1, 2, 9, 0)
        assert schedule.generated_count == 1
        assert schedule.last_generated_date == NOW
        assert [type(e) for e in published] == [RecurringTaskGenerated]
        assert published[0].task_id == task.id

    def test_schedules_not_yet_due_are_skipped(self, service, template):
        make_schedule(service, template, next_due_date=NOW + timedelta(minutes=1))

        result = service.generate_due_tasks(now=NOW)

        assert result["count"] == 0
        assert result["message"] == "No tasks were generated"

    def test_filters_by_user(self, service, template):
        make_schedule(service, template)

        assert service.generate_due_tasks(now=NOW, user_id="user-2")["count"] == 0
        assert service.generate_due_tasks(now=NOW, user_id=USER_ID)["count"] == 1

    def test_broken_schedule_does_not_stop_batch(self, service, template, db_session):
        broken = make_schedule(service, template, next_due_date=datetime(2024, 1, 1))
        healthy = make_schedule(service, template, next_due_date=datetime(2024, 1, 2))
        corrupt(db_session, broken.id, interval=0)

        result = service.generate_due_tasks(now=NOW)

        assert result["count"] == 1
        assert result["generated_tasks"][0].recurring_task_id == healthy.id
        assert len(result["failures"]) == 1
        failure = result["failures"][0]
        assert failure["recurring_task_id"] == broken.id
        assert failure["code"] == "RECURRENCE_001"
        assert failure["details"]["field"] == "interval"

        broken = service.get_recurring_task(broken.id)
        assert broken.generated_count == 0
        assert broken.next_due_date == datetime(2024, 1, 1)

    def test_malformed_stored_days_fall_back_to_whole_weeks(
        self, service, template, db_session
    ):
        schedule = make_schedule(
            service, template, frequency="WEEKLY", days_of_week=[1, 5]
        )
        corrupt(db_session, schedule.id, days_of_week="[1, 5")

        result = service.generate_due_tasks(now=NOW)

        assert result["count"] == 1
        assert service.get_recurring_task(schedule.id).next_due_date == datetime(2024, 1, 8, 9, 0)

    def test_occurrence_count_finishes_schedule(self, service, template, published):
        schedule = make_schedule(service, template, occurrence_count=2)

        assert service.generate_due_tasks(now=NOW)["count"] == 1
        assert service.generate_due_tasks(now=NOW)["count"] == 1
        assert service.generate_due_tasks(now=NOW)["count"] == 0

        schedule = service.get_recurring_task(schedule.id)
        assert schedule.generated_count == 2
        assert schedule.is_active is False
        assert schedule.next_due_date is None
        completed = [e for e in published if isinstance(e, RecurringTaskCompleted)]
        assert len(completed) == 1
        assert completed[0].generated_count == 2

    def test_end_date_finishes_schedule(self, service, template):
        schedule = make_schedule(service, template, end_date=datetime(2024, 1, 2, 9, 0))

        service.generate_due_tasks(now=NOW)
        assert service.get_recurring_task(schedule.id).is_active is True

        service.generate_due_tasks(now=NOW)
        schedule = service.get_recurring_task(schedule.id)
        assert schedule.generated_count == 2
        assert schedule.is_active is False
        assert schedule.next_due_date is None

    def test_schedule_past_its_end_date_is_deactivated(self, service, template, db_session):
        schedule = make_schedule(service, template)
        corrupt(db_session, schedule.id, end_date=datetime(2023, 12, 31))

        result = service.generate_due_tasks(now=NOW)

        assert result["count"] == 0
        assert result["failures"] == []
        schedule = service.get_recurring_task(schedule.id)
        assert schedule.is_active is False
        assert schedule.next_due_date is None

    def test_explicit_ids_ignore_due_date(self, service, template):
        schedule = make_schedule(service, template, next_due_date=datetime(2024, 6, 1))

        result = service.generate_due_tasks(now=NOW, task_ids=[schedule.id])

        assert result["count"] == 1
        assert result["generated_tasks"][0].due_date == datetime(2024, 6, 1)

    def test_explicit_inactive_schedule_is_reported(self, service, template):
        schedule = make_schedule(service, template)
        service.update_recurring_task(schedule.id, RecurringTaskUpdate(is_active=False))

        result = service.generate_due_tasks(now=NOW, task_ids=[schedule.id])

        assert result["count"] == 0
        assert result["failures"][0]["code"] == "BUSINESS_001"
        assert result["failures"][0]["details"]["rule_name"] == "INACTIVE_SCHEDULE"

    def test_schedule_beyond_calendar_range_is_reported(self, service, template):
        schedule = make_schedule(service, template, frequency="YEARLY", interval=9000)

        result = service.generate_due_tasks(now=NOW)

        assert result["count"] == 0
        assert result["failures"][0]["recurring_task_id"] == schedule.id
        assert result["failures"][0]["code"] == "RECURRENCE_004"
        schedule = service.get_recurring_task(schedule.id)
        assert schedule.generated_count == 0
        assert schedule.next_due_date == datetime(2024, 1, 1, 9, 0)
