"""API routes for daybook"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status

from daybook.api.auth import get_user_id, require_admin, verify_api_key
from daybook.api.middleware import limiter
from daybook.api.models import (
    CounterQueryRequest,
    CounterValueRequest,
    DailyFieldRequest,
    EntryCreateRequest,
    EntryUpdateRequest,
    FieldQueryRequest,
    FieldTemplateCreateRequest,
    FieldTemplateTypeRequest,
    FieldValueRequest,
    NameRequest,
    RedeemRequest,
    ReorderRequest,
    RetentionPolicyRequest,
    SettingsUpdateRequest,
    SleepRequest,
    SnapshotCreateRequest,
    TaskCreateRequest,
    TaskQueryRequest,
    TaskUpdateRequest,
    TimeSinceCreateRequest,
    TimerAdjustRequest,
    TimerManualTimeRequest,
    TimerQueryRequest,
)
from daybook.exceptions import ValidationError
from daybook.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.container


def _dump(record) -> dict:
    return record.model_dump(mode="json", by_alias=True)


def _keys(single: Optional[str], many: Optional[list[str]]) -> list[str]:
    return many if many else ([single] if single else [])


# ==========================================
# Day state
# ==========================================

@router.get("/state")
@limiter.limit("120/minute")
async def get_state(
    request: Request,
    date: Optional[str] = None,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    """Materialized day state (today by default; snapshot for ended days)"""
    if date:
        state = await services.state_service.get_state_for_date(user_id, date)
    else:
        state = await services.state_service.get_state(user_id)
    return state.to_json_dict()


# ==========================================
# Settings and sleep
# ==========================================

@router.get("/settings")
@limiter.limit("60/minute")
async def get_settings(
    request: Request,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.journal_service.get_settings(user_id))


@router.put("/settings")
@limiter.limit("30/minute")
async def update_settings(
    request: Request,
    body: SettingsUpdateRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    settings = await services.journal_service.update_settings(
        user_id, theme=body.theme, timezone=body.timezone, auto_save=body.auto_save
    )
    return _dump(settings)


@router.put("/sleep")
@limiter.limit("60/minute")
async def set_sleep(
    request: Request,
    body: SleepRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    sleep = await services.journal_service.set_sleep(user_id, body.previous_bedtime, body.wake_time, body.date)
    return _dump(sleep)


# ==========================================
# Fields
# ==========================================

@router.post("/fields/templates", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_field_template(
    request: Request,
    body: FieldTemplateCreateRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    template = await services.journal_service.create_field_template(user_id, body.key, body.field_type)
    return _dump(template)


@router.patch("/fields/templates/{template_id}")
@limiter.limit("30/minute")
async def update_field_template(
    request: Request,
    template_id: int,
    body: FieldTemplateTypeRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    template = await services.journal_service.update_field_template_type(user_id, template_id, body.field_type)
    return _dump(template)


@router.delete("/fields/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_field_template(
    request: Request,
    template_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    await services.journal_service.delete_field_template(user_id, template_id)


@router.put("/fields/values")
@limiter.limit("120/minute")
async def set_field_value(
    request: Request,
    body: FieldValueRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    row = await services.journal_service.set_field_value(user_id, body.key, body.value, body.date)
    return _dump(row)


@router.post("/fields/daily", status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
async def add_daily_field(
    request: Request,
    body: DailyFieldRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    row = await services.journal_service.add_daily_field(user_id, body.key, body.value, body.date)
    return _dump(row)


@router.delete("/fields/daily/{value_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
async def delete_daily_field(
    request: Request,
    value_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    await services.journal_service.delete_daily_field(user_id, value_id)


# ==========================================
# Entries
# ==========================================

@router.post("/entries", status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
async def create_entry(
    request: Request,
    body: EntryCreateRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    entry = await services.journal_service.create_entry(user_id, body.text, body.image, body.date)
    return _dump(entry)


@router.patch("/entries/{entry_id}")
@limiter.limit("60/minute")
async def update_entry(
    request: Request,
    entry_id: int,
    body: EntryUpdateRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.journal_service.update_entry(user_id, entry_id, body.text))


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
async def delete_entry(
    request: Request,
    entry_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    await services.journal_service.delete_entry(user_id, entry_id)


# ==========================================
# Tasks
# ==========================================

@router.get("/tasks")
@limiter.limit("60/minute")
async def list_tasks(
    request: Request,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    """Every task of the user regardless of date"""
    return [_dump(task) for task in await services.task_service.list_all_tasks(user_id)]


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
async def create_task(
    request: Request,
    body: TaskCreateRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    task = await services.task_service.create_task(
        user_id,
        body.text,
        details=body.details,
        due_date=body.due_date,
        parent_task_id=body.parent_task_id,
        points=body.points,
        date=body.date,
    )
    return _dump(task)


@router.patch("/tasks/{task_id}")
@limiter.limit("60/minute")
async def update_task(
    request: Request,
    task_id: int,
    body: TaskUpdateRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    task = await services.task_service.update_task(
        user_id, task_id, text=body.text, details=body.details, due_date=body.due_date, points=body.points
    )
    return _dump(task)


@router.post("/tasks/{task_id}/toggle")
@limiter.limit("120/minute")
async def toggle_task(
    request: Request,
    task_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.task_service.toggle_task(user_id, task_id))


@router.post("/tasks/{task_id}/pin")
@limiter.limit("60/minute")
async def toggle_task_pinned(
    request: Request,
    task_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.task_service.toggle_pinned(user_id, task_id))


@router.post("/tasks/{task_id}/recurring")
@limiter.limit("60/minute")
async def toggle_task_recurring(
    request: Request,
    task_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.task_service.toggle_recurring(user_id, task_id))


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
async def delete_task(
    request: Request,
    task_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    await services.task_service.delete_task(user_id, task_id)


# ==========================================
# Counters
# ==========================================

@router.post("/counters", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_counter(
    request: Request,
    body: NameRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.tracker_service.create_counter(user_id, body.name))


@router.delete("/counters/{counter_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_counter(
    request: Request,
    counter_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    await services.tracker_service.delete_counter(user_id, counter_id)


@router.post("/counters/{counter_id}/increment")
@limiter.limit("120/minute")
async def increment_counter(
    request: Request,
    counter_id: int,
    date: Optional[str] = None,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    value = await services.tracker_service.increment_counter(user_id, counter_id, date)
    return {"id": counter_id, "value": value}


@router.post("/counters/{counter_id}/decrement")
@limiter.limit("120/minute")
async def decrement_counter(
    request: Request,
    counter_id: int,
    date: Optional[str] = None,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    value = await services.tracker_service.decrement_counter(user_id, counter_id, date)
    return {"id": counter_id, "value": value}


@router.put("/counters/{counter_id}/value")
@limiter.limit("120/minute")
async def set_counter_value(
    request: Request,
    counter_id: int,
    body: CounterValueRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    value = await services.tracker_service.set_counter(user_id, counter_id, body.value, body.date)
    return {"id": counter_id, "value": value}


# ==========================================
# Time-since trackers
# ==========================================

@router.post("/time-since", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_time_since_tracker(
    request: Request,
    body: TimeSinceCreateRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.tracker_service.create_time_since_tracker(user_id, body.name, body.date))


@router.delete("/time-since/{tracker_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_time_since_tracker(
    request: Request,
    tracker_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    await services.tracker_service.delete_time_since_tracker(user_id, tracker_id)


# ==========================================
# Timers
# ==========================================

@router.post("/timers", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_timer(
    request: Request,
    body: NameRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.tracker_service.create_timer(user_id, body.name))


@router.delete("/timers/{tracker_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_timer(
    request: Request,
    tracker_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    await services.tracker_service.delete_timer(user_id, tracker_id)


@router.post("/timers/{tracker_id}/{action}")
@limiter.limit("120/minute")
async def timer_action(
    request: Request,
    tracker_id: int,
    action: str,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    """start | pause | stop | lock | reset"""
    actions = {
        "start": services.tracker_service.start_timer,
        "pause": services.tracker_service.pause_timer,
        "stop": services.tracker_service.stop_timer,
        "lock": services.tracker_service.toggle_timer_lock,
        "reset": services.tracker_service.reset_timer,
    }
    handler = actions.get(action)
    if handler is None:
        raise ValidationError(f"must be one of: {', '.join(actions)}", field="action", value=action)
    return _dump(await handler(user_id, tracker_id))


@router.put("/timers/{tracker_id}/adjust")
@limiter.limit("120/minute")
async def adjust_timer(
    request: Request,
    tracker_id: int,
    body: TimerAdjustRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.tracker_service.adjust_timer(user_id, tracker_id, body.adjustment_ms))


@router.put("/timers/{tracker_id}/time")
@limiter.limit("60/minute")
async def set_timer_time(
    request: Request,
    tracker_id: int,
    body: TimerManualTimeRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    timer = await services.tracker_service.set_timer_manual_time(
        user_id, tracker_id, body.elapsed_ms, body.start_time
    )
    return _dump(timer)


# ==========================================
# Ordering
# ==========================================

@router.put("/reorder/{target}")
@limiter.limit("60/minute")
async def reorder(
    request: Request,
    target: str,
    body: ReorderRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    """Rewrite display order of fields, daily-fields, tasks, entries, counters, time-since or timers"""
    items = [(item.id, item.order_index) for item in body.items]
    updated = await services.journal_service.reorder(user_id, target, items)
    return {"updated": updated}


# ==========================================
# Snapshots
# ==========================================

@router.get("/snapshots")
@limiter.limit("60/minute")
async def list_snapshots(
    request: Request,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return [_dump(info) for info in await services.snapshot_service.list_snapshots(user_id)]


@router.post("/snapshots", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def save_snapshot(
    request: Request,
    body: SnapshotCreateRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.state_service.save_snapshot(user_id, body.date))


@router.get("/snapshots/retention")
@limiter.limit("60/minute")
async def get_retention_policy(
    request: Request,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.snapshot_service.get_retention_policy(user_id))


@router.put("/snapshots/retention")
@limiter.limit("30/minute")
async def set_retention_policy(
    request: Request,
    body: RetentionPolicyRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    policy = await services.snapshot_service.set_retention_policy(user_id, body.max_days, body.max_count)
    remaining = await services.snapshot_service.list_snapshots(user_id)
    return {**_dump(policy), "snapshots": [_dump(info) for info in remaining]}


@router.get("/snapshots/search")
@limiter.limit("60/minute")
async def search_snapshots(
    request: Request,
    text: Optional[str] = None,
    date: Optional[str] = None,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return await services.snapshot_service.search_entries(user_id, text=text, date=date)


@router.get("/snapshots/{date}")
@limiter.limit("60/minute")
async def get_snapshot(
    request: Request,
    date: str,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    state = await services.snapshot_service.get_or_raise(user_id, date)
    return state.to_json_dict()


@router.delete("/snapshots/{date}")
@limiter.limit("30/minute")
async def delete_snapshot(
    request: Request,
    date: str,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    remaining = await services.snapshot_service.delete(user_id, date)
    return [_dump(info) for info in remaining]


# ==========================================
# Points
# ==========================================

@router.get("/points/balance")
@limiter.limit("60/minute")
async def get_points_balance(
    request: Request,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _dump(await services.points_service.get_balance(user_id))


@router.post("/points/redeem", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def redeem_points(
    request: Request,
    body: RedeemRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    receipt = await services.points_service.redeem(user_id, body.reward_description, body.points_cost)
    return _dump(receipt)


@router.get("/points/redemptions")
@limiter.limit("60/minute")
async def list_redemptions(
    request: Request,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return [_dump(r) for r in await services.points_service.list_redemptions(user_id)]


@router.delete("/points/redemptions/{redemption_id}")
@limiter.limit("30/minute")
async def cancel_redemption(
    request: Request,
    redemption_id: int,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    """Cancel a redemption and refund its points; returns the new balance"""
    return _dump(await services.points_service.cancel_redemption(user_id, redemption_id))


# ==========================================
# Analytics
# ==========================================

@router.get("/analytics/populated")
@limiter.limit("60/minute")
async def populated_series(
    request: Request,
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    """Fields, counters and timers that have data in the range"""
    query = services.query_service
    return {
        "fields": await query.populated_fields(user_id, start_date, end_date),
        "counters": await query.populated_counters(user_id, start_date, end_date),
        "timers": await query.populated_timers(user_id, start_date, end_date),
    }


@router.post("/analytics/fields")
@limiter.limit("60/minute")
async def query_fields(
    request: Request,
    body: FieldQueryRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return await services.query_service.query_fields(
        user_id, _keys(body.field_key, body.field_keys), body.start_date, body.end_date, body.group_by
    )


@router.post("/analytics/counters")
@limiter.limit("60/minute")
async def query_counters(
    request: Request,
    body: CounterQueryRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return await services.query_service.query_counters(
        user_id, _keys(body.counter_name, body.counter_names), body.start_date, body.end_date, body.group_by
    )


@router.post("/analytics/timers")
@limiter.limit("60/minute")
async def query_timers(
    request: Request,
    body: TimerQueryRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return await services.query_service.query_timers(
        user_id, _keys(body.timer_name, body.timer_names), body.start_date, body.end_date, body.group_by
    )


@router.post("/analytics/tasks")
@limiter.limit("60/minute")
async def query_tasks(
    request: Request,
    body: TaskQueryRequest,
    user_id: str = Depends(get_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return await services.query_service.query_tasks(
        user_id, body.start_date, body.end_date, body.completion_status, body.group_by
    )


# ==========================================
# Admin
# ==========================================

@router.get("/admin/cache", dependencies=[Depends(require_admin)])
@limiter.limit("30/minute")
async def cache_stats(
    request: Request,
    services: ServiceContainer = Depends(get_services)
):
    return services.cache.stats()


@router.delete("/admin/cache", dependencies=[Depends(require_admin)])
@limiter.limit("10/minute")
async def clear_cache(
    request: Request,
    services: ServiceContainer = Depends(get_services)
):
    """Flush every cached day state"""
    return {"cleared": services.cache.clear()}
