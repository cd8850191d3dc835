"""Statistics over the tasks a user can see.

Key Concepts:
- Visible tasks: tasks the user created or is responsible for.
- Pending: pendente and em-andamento together.
- Overdue: a due date in the past and a status other than concluida.
- Created this month: created on or after the first day of the current
  calendar month (UTC).

Everything is recomputed per request from the raw task records.
"""

import logging
import math
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from src.core.logging import span
from src.domain.task import TaskStatus, ensure_utc
from src.models.service_models import DashboardStats, StatusCount, UserStats
from src.services import access_control, task_repository


logger = logging.getLogger(__name__)

_PENDING_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS})


def completion_rate(completed: int, total: int) -> int:
    """Percentage of completed tasks rounded half-up, 0 when there are no tasks."""
    if total <= 0:
        return 0
    return math.floor(100 * completed / total + 0.5)


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return ensure_utc(datetime.fromisoformat(str(value)))
    except ValueError:
        logger.warning("Unparseable timestamp in task record: %r", value)
        return None


def _is_overdue(record: dict[str, Any], now: datetime) -> bool:
    if record.get("status") == TaskStatus.COMPLETED:
        return False
    due_date = _parse_timestamp(record.get("due_date"))
    return due_date is not None and due_date < now


def start_of_month(now: datetime) -> datetime:
    return ensure_utc(now).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def summarize_user_stats(records: Iterable[dict[str, Any]], now: datetime) -> UserStats:
    """Fold raw task records into UserStats."""
    now = ensure_utc(now)
    month_start = start_of_month(now)

    status_counts: Counter[str] = Counter()
    overdue = 0
    created_this_month = 0
    total = 0

    for record in records:
        total += 1
        status_counts[record["status"]] += 1
        if _is_overdue(record, now):
            overdue += 1
        created = _parse_timestamp(record.get("created"))
        if created is not None and created >= month_start:
            created_this_month += 1

    completed = status_counts[TaskStatus.COMPLETED]
    pending = sum(status_counts[status] for status in _PENDING_STATUSES)

    return UserStats(
        total_tasks=total,
        completed_tasks=completed,
        pending_tasks=pending,
        overdue_tasks=overdue,
        completion_rate=completion_rate(completed, total),
        created_this_month=created_this_month,
        status_counts={status.value: status_counts[status] for status in TaskStatus},
    )


def summarize_dashboard(records: Iterable[dict[str, Any]], now: datetime) -> DashboardStats:
    """Fold raw task records into DashboardStats."""
    now = ensure_utc(now)
    status_counts: Counter[str] = Counter()
    overdue = 0

    for record in records:
        status_counts[record["status"]] += 1
        if _is_overdue(record, now):
            overdue += 1

    return DashboardStats(
        status_stats=[StatusCount(status=status, count=status_counts[status]) for status in TaskStatus],
        overdue_tasks=overdue,
        total_tasks=sum(status_counts.values()),
    )


async def get_user_stats(*, user_id: str, now: datetime | None = None) -> UserStats:
    """Completion statistics over the user's visible tasks.

    Args:
        user_id: ID of the authenticated user
        now: Reference time, defaults to the current UTC time

    Returns:
        UserStats for the user
    """
    with span("stats_service.get_user_stats"):
        records = await task_repository.fetch_all_records(filter_query=access_control.visibility_filter(user_id))
        stats = summarize_user_stats(records, now or datetime.now(UTC))
        logger.debug("Computed user stats", extra={"user_id": user_id, "total_tasks": stats.total_tasks})
        return stats


async def get_dashboard_stats(*, user_id: str, now: datetime | None = None) -> DashboardStats:
    """Per-status counts, overdue count and total over the user's visible tasks."""
    with span("stats_service.get_dashboard_stats"):
        records = await task_repository.fetch_all_records(filter_query=access_control.visibility_filter(user_id))
        return summarize_dashboard(records, now or datetime.now(UTC))
