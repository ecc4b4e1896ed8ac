"""Renderer notifications published after undo/redo.

The engine only publishes; whoever draws the board subscribes. A subscriber
can listen to every task or to a single task id.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TaskEventKind(str, Enum):
    RESTORED = "task restored"
    REMOVED = "task removed"
    UPDATED = "task updated"


@dataclass(frozen=True)
class TaskEvent:
    kind: TaskEventKind
    task_id: int
    old_column: Optional[str] = None


Listener = Callable[[TaskEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._listeners: Dict[TaskEventKind, List[Tuple[Optional[int], Listener]]] = {
            kind: [] for kind in TaskEventKind
        }

    def subscribe(self, kind: TaskEventKind, listener: Listener,
                  task_id: Optional[int] = None) -> Callable[[], None]:
        """Register listener; returns a callable that unregisters it."""
        entry = (task_id, listener)
        self._listeners[kind].append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners[kind]:
                self._listeners[kind].remove(entry)
        return unsubscribe

    def publish(self, event: TaskEvent) -> None:
        for task_id, listener in list(self._listeners[event.kind]):
            if task_id is not None and task_id != event.task_id:
                continue
            try:
                listener(event)
            except Exception:
                logger.exception("listener for %s (task %s) failed", event.kind.value, event.task_id)
