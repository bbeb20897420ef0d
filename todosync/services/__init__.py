from todosync.services import (
    edit_session,
    input_buffers,
    list_service,
    sync_controller,
    task_service,
)


__all__ = [
    "edit_session",
    "input_buffers",
    "list_service",
    "sync_controller",
    "task_service",
]
