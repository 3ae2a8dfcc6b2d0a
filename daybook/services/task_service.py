"""
TaskService - Daily Tasks

Creates and updates tasks and their single level of sub-tasks. Completing a
task, or creating or updating one with details, also writes an activity entry
in the same transaction.
"""

import logging
from typing import Optional

from daybook.exceptions import NotFoundError, ValidationError
from daybook.models.task import DailyTask
from daybook.services.base import MutationService
from daybook.utils.datetime_helpers import parse_date_key

logger = logging.getLogger(__name__)


class TaskService(MutationService):
    """
    Service for daily tasks.

    Responsibilities:
    - Task and sub-task creation (two-level depth enforced)
    - Text, details, due date and points updates
    - Completion toggling with activity logging
    - Pinned / recurring flags
    - Deletion (sub-tasks cascade)
    """

    async def _get_or_raise(self, user_id: str, task_id: int) -> DailyTask:
        task = await self.store.get_task(user_id, task_id)
        if task is None:
            raise NotFoundError(
                f"Task {task_id} not found",
                record_type="Task",
                record_id=task_id,
                user_id=user_id
            )
        return task

    async def create_task(
        self,
        user_id: str,
        text: str,
        details: Optional[str] = None,
        due_date: Optional[str] = None,
        parent_task_id: Optional[int] = None,
        points: int = 0,
        date: Optional[str] = None
    ) -> DailyTask:
        """
        Create a task on a date (today by default).

        Sub-tasks inherit the parent's date and due date.

        Raises:
            ValidationError: Empty text, negative points, bad due date, or a
                parent that is itself a sub-task
            NotFoundError: If parent_task_id does not exist
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("is required", field="text", value=text, user_id=user_id)
        if points < 0:
            raise ValidationError("must be >= 0", field="points", value=points, user_id=user_id)
        if due_date:
            parse_date_key(due_date, field="dueDate")

        date = await self._resolve_date(user_id, date)

        if parent_task_id is not None:
            parent = await self._get_or_raise(user_id, parent_task_id)
            if parent.parent_task_id is not None:
                raise ValidationError(
                    "sub-tasks cannot have sub-tasks",
                    field="parentTaskId",
                    value=parent_task_id,
                    user_id=user_id
                )
            date = parent.date
            due_date = parent.due_date

        due_date = due_date or date

        async with self.store.transaction():
            task = await self.store.create_task(
                user_id,
                date,
                text,
                due_date=due_date,
                details=details or None,
                parent_task_id=parent_task_id,
                points=points,
            )
            if details:
                message = f"created a task: {text}\n{details}"
                if due_date != date:
                    message += f"\nDue: {due_date}"
                entry = await self._append_log(user_id, date, message)
                task = await self.store.update_task(user_id, task.id, log_entry_id=entry.id)

        self._invalidate(user_id)
        logger.info(f"Created task {task.id} for user {user_id} on {date}")
        return task

    async def update_task(
        self,
        user_id: str,
        task_id: int,
        text: Optional[str] = None,
        details: Optional[str] = None,
        due_date: Optional[str] = None,
        points: Optional[int] = None
    ) -> DailyTask:
        """Update task attributes; new details are recorded in the activity log"""
        task = await self._get_or_raise(user_id, task_id)

        changes = {}
        if text is not None:
            if not text.strip():
                raise ValidationError("must not be empty", field="text", value=text, user_id=user_id)
            changes["text"] = text.strip()
        if due_date is not None:
            parse_date_key(due_date, field="dueDate")
            changes["due_date"] = due_date
        if points is not None:
            if points < 0:
                raise ValidationError("must be >= 0", field="points", value=points, user_id=user_id)
            changes["points"] = points
        if details is not None:
            changes["details"] = details or None

        async with self.store.transaction():
            if details:
                today = await self.clock.today(user_id)
                entry = await self._append_log(
                    user_id, today, f"updated task: {changes.get('text', task.text)}\n{details}"
                )
                changes["log_entry_id"] = entry.id
            task = await self.store.update_task(user_id, task_id, **changes)

        self._invalidate(user_id)
        return task

    async def toggle_task(self, user_id: str, task_id: int) -> DailyTask:
        """
        Flip a task between done and not done.

        Completing stamps completed_at and logs the completion on the user's
        today; reopening clears completed_at.
        """
        task = await self._get_or_raise(user_id, task_id)
        done = not task.done

        async with self.store.transaction():
            if done:
                today = await self.clock.today(user_id)
                task = await self.store.update_task(user_id, task_id, done=True, completed_at=self.clock.now())
                await self._append_log(
                    user_id,
                    today,
                    f"Completed a Task: {task.text}\nDue: {task.due_date or task.date}\nCompleted: {today}"
                )
            else:
                task = await self.store.update_task(user_id, task_id, done=False, completed_at=None)

        self._invalidate(user_id)
        logger.debug(f"Task {task_id} for user {user_id} marked {'done' if done else 'open'}")
        return task

    async def toggle_pinned(self, user_id: str, task_id: int) -> DailyTask:
        task = await self._get_or_raise(user_id, task_id)
        task = await self.store.update_task(user_id, task_id, pinned=not task.pinned)
        self._invalidate(user_id)
        return task

    async def toggle_recurring(self, user_id: str, task_id: int) -> DailyTask:
        task = await self._get_or_raise(user_id, task_id)
        task = await self.store.update_task(user_id, task_id, recurring=not task.recurring)
        self._invalidate(user_id)
        return task

    async def delete_task(self, user_id: str, task_id: int) -> None:
        """Delete a task and its sub-tasks"""
        if not await self.store.delete_task(user_id, task_id):
            raise NotFoundError(
                f"Task {task_id} not found",
                record_type="Task",
                record_id=task_id,
                user_id=user_id
            )
        self._invalidate(user_id)

    async def list_all_tasks(self, user_id: str) -> list[DailyTask]:
        return await self.store.get_all_tasks(user_id)
