"""Tests for TaskService"""
import pytest
from unittest.mock import AsyncMock, patch

from daybook.exceptions import NotFoundError, ValidationError

TODAY = "2024-01-05"


@pytest.fixture
def tasks(container):
    return container.task_service


async def _entries(store, user_id, date=TODAY):
    return [e.text for e in await store.get_entries(user_id, date)]


class TestCreateTask:

    async def test_defaults_to_today(self, tasks, test_user_id):
        task = await tasks.create_task(test_user_id, "  write report ")

        assert task.date == TODAY
        assert task.due_date == TODAY
        assert task.text == "write report"
        assert task.log_entry_id is None

    async def test_plain_task_is_not_logged(self, tasks, store, test_user_id):
        await tasks.create_task(test_user_id, "buy milk")

        assert await _entries(store, test_user_id) == []

    async def test_details_are_logged_and_linked(self, tasks, store, test_user_id):
        task = await tasks.create_task(test_user_id, "call mom", details="about the trip", due_date="2024-01-07")

        entries = await store.get_entries(test_user_id, TODAY)
        assert [e.text for e in entries] == ["created a task: call mom\nabout the trip\nDue: 2024-01-07"]
        assert task.log_entry_id == entries[0].id

    async def test_due_line_omitted_when_due_today(self, tasks, store, test_user_id):
        await tasks.create_task(test_user_id, "stretch", details="10 minutes")

        assert await _entries(store, test_user_id) == ["created a task: stretch\n10 minutes"]

    @pytest.mark.parametrize("kwargs,field", [
        ({"text": " "}, "text"),
        ({"text": "t", "points": -1}, "points"),
        ({"text": "t", "due_date": "tomorrow"}, "dueDate"),
        ({"text": "t", "date": "2024/01/05"}, "date"),
    ])
    async def test_validation(self, tasks, test_user_id, kwargs, field):
        with pytest.raises(ValidationError) as exc_info:
            await tasks.create_task(test_user_id, **kwargs)
        assert exc_info.value.field == field

    async def test_subtask_inherits_parent_date(self, tasks, test_user_id):
        parent = await tasks.create_task(test_user_id, "trip", date="2024-01-03", due_date="2024-01-09")

        child = await tasks.create_task(test_user_id, "pack", parent_task_id=parent.id, date="2024-01-05")

        assert child.parent_task_id == parent.id
        assert child.date == "2024-01-03"
        assert child.due_date == "2024-01-09"

    async def test_subtask_of_subtask_rejected(self, tasks, test_user_id):
        parent = await tasks.create_task(test_user_id, "trip")
        child = await tasks.create_task(test_user_id, "pack", parent_task_id=parent.id)

        with pytest.raises(ValidationError) as exc_info:
            await tasks.create_task(test_user_id, "socks", parent_task_id=child.id)
        assert exc_info.value.message == "sub-tasks cannot have sub-tasks"

    async def test_missing_parent(self, tasks, test_user_id):
        with pytest.raises(NotFoundError):
            await tasks.create_task(test_user_id, "orphan", parent_task_id=999)

    async def test_task_shown_on_due_date(self, container, tasks, test_user_id):
        await tasks.create_task(test_user_id, "renew passport", due_date="2024-01-20")

        state = await container.state_service.get_state_for_date(test_user_id, "2024-01-20")

        assert [t.text for t in state.daily_tasks] == ["renew passport"]

    async def test_subtasks_nested_in_state(self, container, tasks, test_user_id):
        parent = await tasks.create_task(test_user_id, "trip")
        await tasks.create_task(test_user_id, "pack", parent_task_id=parent.id)

        state = await container.state_service.get_state(test_user_id)

        assert len(state.daily_tasks) == 1
        assert [s.text for s in state.daily_tasks[0].sub_tasks] == ["pack"]


class TestUpdateTask:

    async def test_update_fields(self, tasks, test_user_id):
        task = await tasks.create_task(test_user_id, "draft")

        updated = await tasks.update_task(test_user_id, task.id, text="final", points=5, due_date="2024-01-06")

        assert (updated.text, updated.points, updated.due_date) == ("final", 5, "2024-01-06")

    async def test_details_update_is_logged_on_today(self, tasks, store, test_user_id):
        task = await tasks.create_task(test_user_id, "essay", date="2024-01-02")

        updated = await tasks.update_task(test_user_id, task.id, details="add sources")

        entries = await store.get_entries(test_user_id, TODAY)
        assert [e.text for e in entries] == ["updated task: essay\nadd sources"]
        assert updated.log_entry_id == entries[0].id

    async def test_empty_text_rejected(self, tasks, test_user_id):
        task = await tasks.create_task(test_user_id, "draft")

        with pytest.raises(ValidationError):
            await tasks.update_task(test_user_id, task.id, text="  ")

    async def test_missing_task(self, tasks, test_user_id):
        with pytest.raises(NotFoundError):
            await tasks.update_task(test_user_id, 404, text="x")


class TestToggleTask:

    async def test_complete_logs_and_stamps(self, tasks, store, frozen_now, test_user_id):
        task = await tasks.create_task(test_user_id, "laundry", due_date="2024-01-06")

        done = await tasks.toggle_task(test_user_id, task.id)

        assert done.done is True
        assert done.completed_at == frozen_now()
        assert await _entries(store, test_user_id) == [
            "Completed a Task: laundry\nDue: 2024-01-06\nCompleted: 2024-01-05"
        ]

    async def test_reopen_clears_completion(self, tasks, store, test_user_id):
        task = await tasks.create_task(test_user_id, "laundry")
        await tasks.toggle_task(test_user_id, task.id)

        reopened = await tasks.toggle_task(test_user_id, task.id)

        assert reopened.done is False
        assert reopened.completed_at is None
        assert len(await _entries(store, test_user_id)) == 1

    async def test_toggle_is_atomic(self, tasks, store, test_user_id):
        """If the log entry cannot be written the task stays open"""
        # Setup
        task = await tasks.create_task(test_user_id, "laundry")

        # Execute
        with patch.object(store, "create_entry", new=AsyncMock(side_effect=RuntimeError("write failed"))):
            with pytest.raises(RuntimeError):
                await tasks.toggle_task(test_user_id, task.id)

        # Assert
        reloaded = await store.get_task(test_user_id, task.id)
        assert reloaded.done is False
        assert reloaded.completed_at is None

    async def test_completed_state_read_after_write(self, container, tasks, test_user_id):
        task = await tasks.create_task(test_user_id, "laundry")
        await container.state_service.get_state(test_user_id)

        await tasks.toggle_task(test_user_id, task.id)
        state = await container.state_service.get_state(test_user_id)

        assert state.daily_tasks[0].completed is True
        assert state.entries[0].text.startswith("Completed a Task: laundry")


class TestFlagsAndDelete:

    async def test_pin_and_recurring_toggle(self, tasks, test_user_id):
        task = await tasks.create_task(test_user_id, "water plants")

        assert (await tasks.toggle_pinned(test_user_id, task.id)).pinned is True
        assert (await tasks.toggle_pinned(test_user_id, task.id)).pinned is False
        assert (await tasks.toggle_recurring(test_user_id, task.id)).recurring is True

    async def test_delete_cascades_to_subtasks(self, tasks, store, test_user_id):
        parent = await tasks.create_task(test_user_id, "trip")
        child = await tasks.create_task(test_user_id, "pack", parent_task_id=parent.id)

        await tasks.delete_task(test_user_id, parent.id)

        assert await store.get_task(test_user_id, child.id) is None
        assert await tasks.list_all_tasks(test_user_id) == []

    async def test_delete_missing(self, tasks, test_user_id):
        with pytest.raises(NotFoundError):
            await tasks.delete_task(test_user_id, 404)
