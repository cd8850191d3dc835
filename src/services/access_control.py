"""Authorization predicates for tasks.

Every task path (list, get, update, delete, complete) goes through these
functions so that read visibility and write permissions are evaluated the
same way everywhere. Nothing here touches the database.

Rules:
- A task is visible to its creator and to its responsible.
- The creator may change every mutable field.
- The responsible may change status and priority only. Supplying a
  creator-only field rejects the whole update.
- Only the creator may delete.
"""

import logging
from typing import Any

from src.core.db_client import sanitize_param
from src.core.errors import ForbiddenError
from src.domain.task import CREATOR_ONLY_FIELDS, Task


logger = logging.getLogger(__name__)

# Creator-only fields that a responsible may send without effect
_SILENTLY_DROPPED_FIELDS = frozenset({"tags"})


def is_creator(user_id: str, task: Task) -> bool:
    return task.creator.id == user_id


def is_responsible(user_id: str, task: Task) -> bool:
    return task.responsible is not None and task.responsible.id == user_id


def is_visible(user_id: str, task: Task) -> bool:
    """A task is visible to its creator and its responsible."""
    return is_creator(user_id, task) or is_responsible(user_id, task)


def can_delete(user_id: str, task: Task) -> bool:
    return is_creator(user_id, task)


def visibility_filter(user_id: str) -> str:
    """The visibility predicate as a db_client filter expression."""
    safe_id = sanitize_param(user_id)
    return f'(creator = "{safe_id}" || responsible = "{safe_id}")'


def filter_changes(acting_user_id: str, task: Task, changes: dict[str, Any]) -> dict[str, Any]:
    """Return the subset of changes the acting user may apply.

    Args:
        acting_user_id: ID of the user performing the update
        task: Current state of the task (must already be visible to the user)
        changes: Requested changes keyed by field name

    Returns:
        The permitted changes

    Raises:
        ForbiddenError: If a non-creator supplies title, description,
            responsible or due_date
    """
    if is_creator(acting_user_id, task):
        return dict(changes)

    disallowed = sorted(CREATOR_ONLY_FIELDS.intersection(changes))
    if disallowed:
        logger.warning(
            "Rejected update of creator-only fields",
            extra={"user_id": acting_user_id, "task_id": task.id, "fields": disallowed},
        )
        raise ForbiddenError

    return {field: value for field, value in changes.items() if field not in _SILENTLY_DROPPED_FIELDS}
