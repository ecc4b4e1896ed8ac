"""Error taxonomy for the board engine.

Validation and lookup errors are raised at the Board boundary and leave the
store untouched. Persistence failures are raised by storage backends and are
caught by the application root, which reports them as warnings.
"""
from typing import Any, Optional


class KanbanError(Exception):
    """Base for every error the engine raises on purpose."""


class TaskNotFound(KanbanError):
    def __init__(self, task_id: Any):
        super().__init__(f'Task id {task_id} not found.')
        self.task_id = task_id


class ValidationError(KanbanError):
    """A patch or snapshot was rejected before any field changed."""


class InvalidColumn(ValidationError):
    def __init__(self, column: Any):
        super().__init__(f'Invalid column: {column!r}')
        self.column = column


class TagLimitExceeded(ValidationError):
    def __init__(self, task_id: Any, limit: int):
        super().__init__(f'Task {task_id} already has the maximum of {limit} tags.')
        self.task_id = task_id
        self.limit = limit


class InvalidField(ValidationError):
    def __init__(self, field: str, reason: str):
        super().__init__(f'Invalid {field}: {reason}')
        self.field = field
        self.reason = reason


class PersistenceFailure(KanbanError):
    def __init__(self, key: str, reason: str):
        super().__init__(f'Could not save "{key}": {reason}')
        self.key = key
        self.reason = reason


class HistoryApplyError(KanbanError):
    """Undo/redo could not apply a snapshot; the stacks were left as they were."""

    def __init__(self, direction: str, action: Any, cause: Optional[BaseException] = None):
        description = getattr(action, 'description', '?')
        super().__init__(f'{direction.capitalize()} failed for "{description}": {cause}')
        self.direction = direction
        self.action = action
        self.cause = cause
