"""Process-wide registry of per-user task boards."""

from fusion.services import task_service
from fusion.services.board_state import BoardRegistry, OptimisticStateController
from fusion.services.change_listener import ChangeListener, TASK_TABLES


def _task_board(user_id: str) -> OptimisticStateController:
    return OptimisticStateController(
        lambda: task_service.list_tasks(user_id),
        name=f"tasks:{user_id}",
    )


def _task_listener(controller: OptimisticStateController) -> ChangeListener:
    # a new assignment or comment for this user also refreshes the board
    return ChangeListener(controller, tables=TASK_TABLES, user_tables={"notifications": "user_id"})


board_registry = BoardRegistry(_task_board, _task_listener)
