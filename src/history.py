"""Undo/redo over task mutations.

Decisions:
- History is linear: recording a new action clears the redo stack.
- Both stacks hold at most max_history actions; the oldest undo entry is
  dropped first. The redo stack can only grow from undo pops, so it never
  needs its own eviction.
- Actions keep their own deep copies of the before/after task state, and a
  copy of that copy is what gets written back into the store.
- If applying an action fails, the action goes back on the stack it came
  from and HistoryApplyError is raised, so the stacks look untouched.
- Nothing here is persisted; history lives for one session.
"""
from __future__ import annotations
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, List, Optional, Tuple

from board import Board
from errors import HistoryApplyError, InvalidField
from events import EventBus, TaskEvent, TaskEventKind
from models import Task

logger = logging.getLogger(__name__)

MAX_HISTORY = 50


class ActionType(str, Enum):
    CREATE = "create"
    DELETE = "delete"
    MOVE = "move"
    PRIORITY = "priority"
    TIMER = "timer"
    TAGS = "tags"
    DUE_DATE = "dueDate"
    NOTES = "notes"
    TITLE = "title"
    UPDATE = "update"


@dataclass
class Action:
    type: ActionType
    task_id: int
    previous_state: Optional[Task]
    new_state: Optional[Task]
    description: str
    timestamp: float = field(default_factory=time.time)
    delta: Optional[int] = None  # signed minutes for TIMER actions


@dataclass(frozen=True)
class HistoryResult:
    ok: bool
    message: str
    action: Optional[Action] = None


@dataclass(frozen=True)
class HistoryStatus:
    can_undo: bool
    can_redo: bool
    undo_count: int
    redo_count: int
    last_undo: Optional[str]
    last_redo: Optional[str]


class ActionLog:
    def __init__(self, board: Board, events: Optional[EventBus] = None,
                 max_history: int = MAX_HISTORY):
        self.board = board
        self.events = events or EventBus()
        self.max_history = max_history
        self._undo: Deque[Action] = deque(maxlen=max_history)
        self._redo: List[Action] = []

    # -------------------- recording --------------------
    def record(self, action: Action) -> None:
        action.previous_state = action.previous_state.clone() if action.previous_state else None
        action.new_state = action.new_state.clone() if action.new_state else None
        self._undo.append(action)
        self._redo.clear()
        logger.debug("recorded %s on task %s: %s", action.type.value, action.task_id, action.description)

    # -------------------- undo / redo --------------------
    def undo(self) -> HistoryResult:
        if not self._undo:
            return HistoryResult(False, 'Nothing to undo')
        action = self._undo.pop()
        try:
            event = self._apply_undo(action)
        except Exception as exc:
            self._undo.append(action)
            logger.exception("undo of %s on task %s failed", action.type.value, action.task_id)
            raise HistoryApplyError('undo', action, exc) from exc
        self._redo.append(action)
        self.events.publish(event)
        return HistoryResult(True, f'Undone: {action.description}', action)

    def redo(self) -> HistoryResult:
        if not self._redo:
            return HistoryResult(False, 'Nothing to redo')
        action = self._redo.pop()
        try:
            event = self._apply_redo(action)
        except Exception as exc:
            self._redo.append(action)
            logger.exception("redo of %s on task %s failed", action.type.value, action.task_id)
            raise HistoryApplyError('redo', action, exc) from exc
        self._undo.append(action)
        self.events.publish(event)
        return HistoryResult(True, f'Redone: {action.description}', action)

    def _apply_undo(self, action: Action) -> TaskEvent:
        if action.type is ActionType.CREATE:
            self.board.purge(action.task_id)
            return TaskEvent(TaskEventKind.REMOVED, action.task_id)
        if action.previous_state is None:
            raise InvalidField('previous_state', f'{action.type.value} action has no prior state')
        if action.type is ActionType.DELETE:
            restored = action.previous_state.clone()
            restored.deleted = False
            self.board.insert(restored)
            return TaskEvent(TaskEventKind.RESTORED, action.task_id)
        old_column = self.board.overwrite(action.task_id, action.previous_state)
        return TaskEvent(TaskEventKind.UPDATED, action.task_id, old_column)

    def _apply_redo(self, action: Action) -> TaskEvent:
        if action.type is ActionType.DELETE:
            task = self.board.get(action.task_id)
            task.deleted = True
            return TaskEvent(TaskEventKind.REMOVED, action.task_id)
        if action.new_state is None:
            raise InvalidField('new_state', f'{action.type.value} action has no forward state')
        if action.type is ActionType.CREATE:
            self.board.insert(action.new_state)
            return TaskEvent(TaskEventKind.RESTORED, action.task_id)
        old_column = self.board.overwrite(action.task_id, action.new_state)
        return TaskEvent(TaskEventKind.UPDATED, action.task_id, old_column)

    # -------------------- status --------------------
    @property
    def undo_stack(self) -> Tuple[Action, ...]:
        """Oldest first; the last item is what undo() would revert."""
        return tuple(self._undo)

    @property
    def redo_stack(self) -> Tuple[Action, ...]:
        return tuple(self._redo)

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def status(self) -> HistoryStatus:
        return HistoryStatus(
            can_undo=bool(self._undo),
            can_redo=bool(self._redo),
            undo_count=len(self._undo),
            redo_count=len(self._redo),
            last_undo=self._undo[-1].description if self._undo else None,
            last_redo=self._redo[-1].description if self._redo else None,
        )

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
