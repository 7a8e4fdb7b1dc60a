from src.services import (
    auth_service,
    task_guard,
    task_service,
)


__all__ = [
    "auth_service",
    "task_guard",
    "task_service",
]
