"""Priority ordering of cards within a column.

Decisions:
- "todo" is the intake column: untriaged cards (no priority) float to the
  top, then High > Medium > Low.
- Every other column: High > Medium > Low, cards without a priority sink.
- Ties go to the newer card (higher id), since ids grow with creation.
- A missing or unrecognised priority ranks as "none" in both tables.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from models import COLUMNS, PRIORITIES, Task

TODO_RANKS: Dict[Optional[str], int] = {None: 0, 'high': 1, 'medium': 2, 'low': 3}
DEFAULT_RANKS: Dict[Optional[str], int] = {'high': 0, 'medium': 1, 'low': 2, None: 3}


def priority_rank(priority: Optional[str], column_id: str) -> int:
    table = TODO_RANKS if column_id == 'todo' else DEFAULT_RANKS
    return table[priority if priority in PRIORITIES else None]


def sort_key(task: Task, column_id: str) -> Tuple[int, int]:
    return priority_rank(task.priority, column_id), -task.id


def sort_column(column_id: str, tasks: Iterable[Task]) -> List[int]:
    """Return the ids of tasks in display order for column_id."""
    return [t.id for t in sorted(tasks, key=lambda t: sort_key(t, column_id))]


def sort_board(tasks: Iterable[Task]) -> Dict[str, List[int]]:
    """Ordered ids per column, skipping soft-deleted tasks."""
    grouped: Dict[str, List[Task]] = {column: [] for column in COLUMNS}
    for task in tasks:
        if not task.deleted and task.column in grouped:
            grouped[task.column].append(task)
    return {column: sort_column(column, grouped[column]) for column in COLUMNS}
