"""Current project / task defaults used when a tool call omits an id."""

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ContextStore:
    """
    Holds the current project and task ids for the lifetime of the process.

    No validation happens here; callers confirm the ids against Redmine
    before storing them. Not thread-safe: tool calls are awaited one at a
    time on the server's event loop.
    """

    def __init__(self) -> None:
        self._project_id: Optional[int] = None
        self._task_id: Optional[int] = None

    def set_project(self, project_id: int) -> None:
        logger.info("Current project set to %s", project_id)
        self._project_id = project_id

    def get_project(self) -> Optional[int]:
        return self._project_id

    def set_task(self, task_id: int) -> None:
        logger.info("Current task set to #%s", task_id)
        self._task_id = task_id

    def get_task(self) -> Optional[int]:
        return self._task_id

    def get_all(self) -> Dict[str, Optional[int]]:
        return {"project_id": self._project_id, "task_id": self._task_id}

    def clear(self) -> None:
        logger.info("Context cleared")
        self._project_id = None
        self._task_id = None
