"""Application root: builds the engine once and runs user operations.

Every editing operation follows the same order: validate and mutate the
board, record an undoable action, move the snapshot to the trash when
deleting, then persist. Persistence problems are reported through notify()
as warnings and never undo the in-memory change.

No-op edits (moving to the same column, setting the same priority, adding a
tag the task already has, ...) return the task unchanged and record nothing.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

from board import Board, Change
from errors import HistoryApplyError, InvalidField, PersistenceFailure, TagLimitExceeded, TaskNotFound
from events import EventBus
from filters import ColumnCount, FilterState, column_counts, is_visible
from history import MAX_HISTORY, Action, ActionLog, ActionType, HistoryResult
from models import (
    COLUMNS, MAX_TAGS_PER_TASK, NoteEntry, Task, column_name, normalize_priority,
    now_stamp, parse_due_date, priority_label, validate_column, validate_title,
)
from sorting import sort_column
from storage import KeyValueStore, Storage
from tags import DEFAULT_COLOR, Tag, TagRegistry
from trash import TRASH_MAX_ITEMS, Trash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    level: str  # info, success, warning or error
    text: str


class Kanban:
    def __init__(self, store: KeyValueStore, notify: Optional[Callable[[Notice], None]] = None,
                 max_history: int = MAX_HISTORY, trash_max: int = TRASH_MAX_ITEMS):
        self.notices: List[Notice] = []
        self._notify = notify or self.notices.append
        self.storage = Storage(store)
        self.events = EventBus()
        self.trash = Trash(store, max_items=trash_max)
        self.tags = TagRegistry(store)
        self.board = Board(self.storage.load_tasks(), self.storage.load_next_id())
        self.board.reserve_ids(self.trash.ids())
        self.history = ActionLog(self.board, self.events, max_history)
        self.filters = FilterState()

    # -------------------- plumbing --------------------
    def _live(self, task_id: int) -> Task:
        task = self.board.get(task_id)
        if task.deleted:
            raise TaskNotFound(task_id)
        return task

    def _record(self, type_: ActionType, change: Change, description: str,
                delta: Optional[int] = None) -> None:
        self.history.record(Action(type_, change.task.id, change.before, change.after,
                                   description, delta=delta))

    def _persist(self) -> None:
        try:
            self.storage.save_tasks(self.board.get_tasks(), self.board.next_id)
        except PersistenceFailure as exc:
            logger.warning("board not saved: %s", exc)
            self._notify(Notice('warning', f'Changes kept in memory but not saved ({exc.reason}).'))
        if self.trash.dirty and not self.trash.flush():
            self._notify(Notice('warning', 'Trash could not be saved.'))
        if self.tags.dirty and not self.tags.flush():
            self._notify(Notice('warning', 'Tags could not be saved.'))

    # -------------------- task operations --------------------
    def add_task(self, title: str, column: str = 'todo', priority: Optional[str] = None,
                 tags: Iterable[str] = (), due_date: Optional[date] = None) -> Task:
        change = self.board.create(title, column=column, priority=priority, tags=tags, due_date=due_date)
        self._record(ActionType.CREATE, change, f'Create "{change.task.title}"')
        self._persist()
        return change.task

    def move_task(self, task_id: int, column: str) -> Task:
        task = self._live(task_id)
        column = validate_column(column)
        if task.column == column:
            return task
        old = task.column
        change = self.board.mutate(task_id, {'column': column},
                                   (f'Moved from {column_name(old)} to {column_name(column)}', 'status'))
        self._record(ActionType.MOVE, change, f'Move "{task.title}" to {column_name(column)}')
        self._persist()
        return task

    def set_priority(self, task_id: int, priority: Optional[str]) -> Task:
        task = self._live(task_id)
        priority = normalize_priority(priority)
        if task.priority == priority:
            return task
        text = f'Priority changed from {priority_label(task.priority)} to {priority_label(priority)}'
        change = self.board.mutate(task_id, {'priority': priority}, (text, 'priority'))
        self._record(ActionType.PRIORITY, change, f'Set priority to {priority_label(priority)}')
        self._persist()
        return task

    def add_time(self, task_id: int, minutes: int) -> Task:
        """Adjust the timer by minutes (negative subtracts), never below zero."""
        task = self._live(task_id)
        new_total = max(0, task.timer + minutes)
        delta = new_total - task.timer
        if delta == 0:
            return task
        text = (f'Added {delta} minute(s) to timer' if delta > 0
                else f'Removed {-delta} minute(s) from timer')
        change = self.board.mutate(task_id, {'timer': new_total}, (text, 'timer'))
        self._record(ActionType.TIMER, change, text, delta=delta)
        self._persist()
        return task

    def add_tag_to_task(self, task_id: int, tag_id: str) -> Task:
        task = self._live(task_id)
        if tag_id in task.tags:
            return task
        if len(task.tags) >= MAX_TAGS_PER_TASK:
            raise TagLimitExceeded(task_id, MAX_TAGS_PER_TASK)
        name = self.tags.display_name(tag_id)
        change = self.board.mutate(task_id, {'tags': task.tags + [tag_id]},
                                   (f'Added tag "{name}"', 'tag'))
        self._record(ActionType.TAGS, change, f'Add tag "{name}"')
        self._persist()
        return task

    def remove_tag_from_task(self, task_id: int, tag_id: str) -> Task:
        task = self._live(task_id)
        if tag_id not in task.tags:
            return task
        name = self.tags.display_name(tag_id)
        change = self.board.mutate(task_id, {'tags': [t for t in task.tags if t != tag_id]},
                                   (f'Removed tag "{name}"', 'tag'))
        self._record(ActionType.TAGS, change, f'Remove tag "{name}"')
        self._persist()
        return task

    def set_due_date(self, task_id: int, due_date: Optional[date]) -> Task:
        task = self._live(task_id)
        due = parse_due_date(due_date)
        old = task.due_date
        if old == due:
            return task
        if due and not old:
            text, description = f'Due date set to {due.isoformat()}', f'Set due date to {due.isoformat()}'
        elif old and not due:
            text, description = 'Due date removed', 'Remove due date'
        else:
            text = f'Due date changed from {old.isoformat()} to {due.isoformat()}'
            description = f'Change due date to {due.isoformat()}'
        change = self.board.mutate(task_id, {'due_date': due}, (text, 'dueDate'))
        self._record(ActionType.DUE_DATE, change, description)
        self._persist()
        return task

    def add_note(self, task_id: int, notes_html: str) -> Task:
        task = self._live(task_id)
        if not (notes_html or '').strip():
            raise InvalidField('note', 'must not be empty')
        entry = NoteEntry(timestamp=now_stamp(), notes_html=notes_html)
        change = self.board.mutate(task_id, {'note_entries': task.note_entries + [entry]},
                                   ('Added note', 'note'))
        self._record(ActionType.NOTES, change, 'Add note')
        self._persist()
        return task

    def update_note(self, task_id: int, index: int, notes_html: str) -> Task:
        task = self._live(task_id)
        self._check_note_index(task, index)
        if not (notes_html or '').strip():
            raise InvalidField('note', 'must not be empty')
        entries = list(task.note_entries)
        entries[index] = NoteEntry(entries[index].timestamp, notes_html, entries[index].images)
        change = self.board.mutate(task_id, {'note_entries': entries}, ('Edited note', 'note'))
        self._record(ActionType.NOTES, change, 'Edit note')
        self._persist()
        return task

    def delete_note(self, task_id: int, index: int) -> Task:
        task = self._live(task_id)
        self._check_note_index(task, index)
        entries = list(task.note_entries)
        del entries[index]
        change = self.board.mutate(task_id, {'note_entries': entries}, ('Deleted note', 'note'))
        self._record(ActionType.NOTES, change, 'Delete note')
        self._persist()
        return task

    @staticmethod
    def _check_note_index(task: Task, index: int) -> None:
        if not 0 <= index < len(task.note_entries):
            raise InvalidField('note', f'task {task.id} has no note #{index + 1}')

    def rename_task(self, task_id: int, title: str) -> Task:
        task = self._live(task_id)
        new_title = validate_title(title)
        if new_title == task.title:
            return task
        old_title = task.title
        change = self.board.mutate(task_id, {'title': new_title},
                                   (f'Renamed from "{old_title}" to "{new_title}"', 'status'))
        self._record(ActionType.TITLE, change, f'Rename to "{new_title}"')
        self._persist()
        return task

    def delete_task(self, task_id: int) -> Task:
        """Soft-delete, make it undoable and keep a copy in the trash."""
        task = self._live(task_id)
        change = self.board.soft_delete(task_id)
        self.history.record(Action(ActionType.DELETE, task_id, change.before, None,
                                   f'Delete "{task.title}"'))
        self.trash.move_to_trash(change.after)
        self._persist()
        return task

    # -------------------- history --------------------
    def undo(self) -> HistoryResult:
        return self._step('undo')

    def redo(self) -> HistoryResult:
        return self._step('redo')

    def _step(self, direction: str) -> HistoryResult:
        try:
            result = self.history.undo() if direction == 'undo' else self.history.redo()
        except HistoryApplyError as exc:
            self._notify(Notice('error', f'{direction.capitalize()} failed'))
            return HistoryResult(False, str(exc), exc.action)
        self._notify(Notice('info', result.message))
        if result.ok:
            self._persist()
        return result

    # -------------------- trash --------------------
    def restore_from_trash(self, task_id: int) -> Optional[Task]:
        """Bring a trashed task back; refused while the id is live on the board."""
        live = self.board.find(task_id)
        if live is not None and not live.deleted and task_id in self.trash:
            self._notify(Notice('warning', f'Task {task_id} is already on the board; trash entry kept.'))
            return None
        task = self.trash.restore_from_trash(task_id)
        if task is None:
            return None
        restored = self.board.insert(task)
        self._notify(Notice('success', 'Task restored'))
        self._persist()
        return restored

    def permanently_delete(self, task_id: int) -> bool:
        if not self.trash.permanently_delete(task_id):
            return False
        self._purge_deleted(task_id)
        self._persist()
        return True

    def empty_trash(self) -> int:
        ids = self.trash.ids()
        self.trash.empty_trash()
        for task_id in ids:
            self._purge_deleted(task_id)
        self._persist()
        return len(ids)

    def _purge_deleted(self, task_id: int) -> None:
        task = self.board.find(task_id)
        if task is not None and task.deleted:
            self.board.purge(task_id)

    # -------------------- tags --------------------
    def create_tag(self, name: str, color_index: int = DEFAULT_COLOR) -> Optional[Tag]:
        tag = self.tags.create_tag(name, color_index)
        self._persist()
        return tag

    def delete_tag(self, tag_id: str) -> bool:
        """Remove a tag definition and strip it from every task (not undoable)."""
        if not self.tags.delete_tag(tag_id):
            return False
        for task in self.board.all_tasks():
            if tag_id in task.tags:
                self.board.mutate(task.id, {'tags': [t for t in task.tags if t != tag_id]})
        self._persist()
        return True

    # -------------------- filtering / ordering --------------------
    def set_search(self, term: str) -> None:
        self.filters = self.filters.with_search(term)

    def set_column_filter(self, column: Optional[str]) -> None:
        self.filters = self.filters.with_column(column)

    def set_tag_filter(self, tags: Iterable[str]) -> None:
        self.filters = self.filters.with_tags(tags)

    def clear_filters(self) -> None:
        self.filters = FilterState()

    def is_visible(self, task: Task) -> bool:
        return is_visible(task, self.filters, self.tags.resolve_name)

    def ordered_column(self, column: str) -> List[Task]:
        return [self.board.get(tid) for tid in sort_column(column, self.board.tasks_in(column))]

    def visible_columns(self) -> Dict[str, List[Task]]:
        return {column: [t for t in self.ordered_column(column) if self.is_visible(t)]
                for column in COLUMNS}

    def column_counts(self) -> Dict[str, ColumnCount]:
        return column_counts(self.board.all_tasks(), self.filters, self.tags.resolve_name)
