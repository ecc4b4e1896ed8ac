"""Task store: owns live task records, id allocation and field mutation.

Every mutating call validates first and only then touches the record, so a
rejected patch never leaves a half-updated task behind. Mutations hand back
a Change carrying independent before/after snapshots for the action log.
"""
import copy
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from errors import InvalidField, TagLimitExceeded, TaskNotFound
from models import (
    MAX_TAGS_PER_TASK, NoteEntry, Task, normalize_priority, normalize_tags,
    parse_due_date, validate_column, validate_timer, validate_title,
)

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS: Tuple[str, ...] = (
    'title', 'column', 'priority', 'tags', 'due_date', 'timer', 'note_entries', 'sub_kanban',
)


class Change(NamedTuple):
    task: Task
    before: Optional[Task]
    after: Optional[Task]


class Board:
    def __init__(self, tasks: Iterable[Task] = (), next_id: int = 1):
        self._tasks: Dict[int, Task] = {}
        self._next_id: int = max(1, next_id)
        for task in tasks:
            if task.id in self._tasks:
                logger.warning("duplicate task id %s ignored while loading", task.id)
                continue
            self._tasks[task.id] = task
        self.reserve_ids(self._tasks)

    # -------------------- id management --------------------
    @property
    def next_id(self) -> int:
        return self._next_id

    def reserve_ids(self, ids: Iterable[int]) -> None:
        """Make sure ids already handed out (live or trashed) are never reused."""
        for tid in ids:
            if tid >= self._next_id:
                self._next_id = tid + 1

    def _allocate_id(self) -> int:
        nid = self._next_id
        self._next_id += 1
        return nid

    # -------------------- queries --------------------
    def find(self, task_id: int) -> Optional[Task]:
        return self._tasks.get(task_id)

    def get(self, task_id: int) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    def all_tasks(self) -> List[Task]:
        return list(self._tasks.values())

    def tasks_in(self, column: str) -> List[Task]:
        return [t for t in self._tasks.values() if t.column == column and not t.deleted]

    def snapshot(self, task_id: int) -> Task:
        return self.get(task_id).clone()

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    # -------------------- task operations --------------------
    def create(self, title: str, column: str = 'todo', priority: Optional[str] = None,
               tags: Iterable[str] = (), due_date: Optional[date] = None, timer: int = 0) -> Change:
        tag_list = normalize_tags(tags)
        if len(tag_list) > MAX_TAGS_PER_TASK:
            raise TagLimitExceeded('(new)', MAX_TAGS_PER_TASK)
        task = Task(
            id=0,
            title=validate_title(title),
            column=validate_column(column),
            priority=normalize_priority(priority),
            tags=tag_list,
            due_date=parse_due_date(due_date),
            timer=validate_timer(timer),
        )
        task.id = self._allocate_id()
        task.log('Created', 'created')
        self._tasks[task.id] = task
        logger.debug("created task %s in %s", task.id, task.column)
        return Change(task, None, task.clone())

    def mutate(self, task_id: int, patch: Mapping[str, Any],
               event: Optional[Tuple[str, str]] = None) -> Change:
        """Apply patch to a task; event is an optional (text, type) audit line."""
        task = self.get(task_id)
        changes = self._validate_patch(task, patch)
        before = task.clone()
        for key, value in changes.items():
            setattr(task, key, value)
        if event:
            task.log(*event)
        return Change(task, before, task.clone())

    def soft_delete(self, task_id: int) -> Change:
        task = self.get(task_id)
        before = task.clone()
        task.deleted = True
        task.log('Deleted', 'deleted')
        logger.debug("soft-deleted task %s", task_id)
        return Change(task, before, task.clone())

    def insert(self, snapshot: Task) -> Task:
        """Put a copy of snapshot in the store, replacing a same-id record in place."""
        task = self._checked(snapshot)
        self._tasks[task.id] = task
        self.reserve_ids([task.id])
        return task

    def overwrite(self, task_id: int, snapshot: Task) -> str:
        """Replace every field of the live record; returns the column it had before."""
        live = self.get(task_id)
        checked = self._checked(snapshot)
        if checked.id != task_id:
            raise InvalidField('id', f'snapshot is for task {checked.id}, not {task_id}')
        old_column = live.column
        live.overwrite_from(checked)
        return old_column

    def purge(self, task_id: int) -> Task:
        task = self._tasks.pop(task_id, None)
        if task is None:
            raise TaskNotFound(task_id)
        logger.debug("purged task %s", task_id)
        return task

    # -------------------- validation --------------------
    def _validate_patch(self, task: Task, patch: Mapping[str, Any]) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for key, value in patch.items():
            if key == 'title':
                changes[key] = validate_title(value)
            elif key == 'column':
                changes[key] = validate_column(value)
            elif key == 'priority':
                changes[key] = normalize_priority(value)
            elif key == 'tags':
                tags = normalize_tags(value)
                if len(tags) > MAX_TAGS_PER_TASK:
                    raise TagLimitExceeded(task.id, MAX_TAGS_PER_TASK)
                changes[key] = tags
            elif key == 'due_date':
                changes[key] = parse_due_date(value)
            elif key == 'timer':
                changes[key] = validate_timer(value)
            elif key == 'note_entries':
                entries = list(value)
                if not all(isinstance(e, NoteEntry) for e in entries):
                    raise InvalidField('note_entries', 'expected NoteEntry items')
                changes[key] = entries
            elif key == 'sub_kanban':
                changes[key] = copy.deepcopy(value)
            else:
                raise InvalidField(key, 'field cannot be changed')
        return changes

    @staticmethod
    def _checked(snapshot: Any) -> Task:
        if not isinstance(snapshot, Task):
            raise InvalidField('snapshot', f'expected a Task, got {type(snapshot).__name__}')
        if isinstance(snapshot.id, bool) or not isinstance(snapshot.id, int):
            raise InvalidField('id', f'expected an integer, got {snapshot.id!r}')
        validate_title(snapshot.title)
        validate_column(snapshot.column)
        normalize_priority(snapshot.priority)
        validate_timer(snapshot.timer)
        if len(snapshot.tags) > MAX_TAGS_PER_TASK:
            raise TagLimitExceeded(snapshot.id, MAX_TAGS_PER_TASK)
        return snapshot.clone()

    # -------------------- serialization --------------------
    def get_tasks(self) -> List[Dict[str, Any]]:
        return [task.to_dict() for task in self._tasks.values()]

    def __str__(self) -> str:
        live = [t for t in self._tasks.values() if not t.deleted]
        return (f'To Do: {sum(t.column == "todo" for t in live)} tasks, '
                f'In Progress: {sum(t.column == "inProgress" for t in live)} tasks, '
                f'On Hold: {sum(t.column == "onHold" for t in live)} tasks, '
                f'Done: {sum(t.column == "done" for t in live)} tasks')
