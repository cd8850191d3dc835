from src.services import (
    access_control,
    stats_service,
    task_repository,
    task_service,
    user_service,
)


__all__ = [
    "access_control",
    "stats_service",
    "task_repository",
    "task_service",
    "user_service",
]
