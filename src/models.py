"""Data models for the kanban engine.

Internal column keys are camelCase ("todo", "inProgress", "onHold", "done")
so saved boards stay compatible with the browser version; user-facing
headers render as "To Do", "In Progress", "On Hold" and "Done".

Task records are plain mutable dataclasses owned by the Board. Note and
audit entries are frozen, so Task.clone() only has to copy the containers
to produce an independent snapshot.
"""
from __future__ import annotations
import copy
import logging
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from errors import InvalidColumn, InvalidField

logger = logging.getLogger(__name__)

COLUMNS: Tuple[str, ...] = ("todo", "inProgress", "onHold", "done")
COLUMN_NAMES: Dict[str, str] = {
    "todo": "To Do",
    "inProgress": "In Progress",
    "onHold": "On Hold",
    "done": "Done",
}
PRIORITIES: Tuple[str, ...] = ("low", "medium", "high")
AUDIT_TYPES = frozenset({
    "created", "status", "priority", "timer", "tag", "dueDate", "note", "subtask", "deleted",
})
MAX_TAGS_PER_TASK = 5
MAX_TITLE_LENGTH = 200


def now_stamp() -> str:
    return datetime.now().isoformat(timespec='seconds')


@dataclass(frozen=True)
class NoteEntry:
    """One timestamped rich-text note. notes_html is stored as entered."""
    timestamp: str
    notes_html: str
    images: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {'timestamp': self.timestamp, 'notesHTML': self.notes_html, 'images': list(self.images)}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> NoteEntry:
        _require_mapping('noteEntries', raw)
        images = raw.get('images') or ()
        if isinstance(images, str) or not isinstance(images, (list, tuple)):
            raise InvalidField('images', f'expected a list, got {images!r}')
        return cls(
            timestamp=str(raw.get('timestamp') or ''),
            notes_html=str(raw.get('notesHTML') or ''),
            images=tuple(str(i) for i in images),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """A permanent audit line on a task ("Moved from To Do to Done")."""
    action: str
    timestamp: str
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return {'action': self.action, 'timestamp': self.timestamp, 'type': self.type}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> HistoryEntry:
        _require_mapping('actions', raw)
        type_ = raw.get('type')
        return cls(
            action=str(raw.get('action') or ''),
            timestamp=str(raw.get('timestamp') or ''),
            type=type_ if type_ in AUDIT_TYPES else 'status',
        )


@dataclass
class Task:
    """A single kanban task.

    Fields:
        id: Integer id, increasing with creation order and never reused.
        title: Trimmed, non-empty, at most MAX_TITLE_LENGTH characters.
        column: One of COLUMNS.
        priority: None (no priority) or one of PRIORITIES.
        tags: Tag ids, at most MAX_TAGS_PER_TASK, no duplicates.
        due_date: Calendar date or None.
        timer: Minutes worked, never negative.
        note_entries: Notes in the order they were added.
        actions: Audit history; engine code only appends to it.
        deleted: Soft-delete flag.
        sub_kanban: Nested sub-board, carried as opaque JSON.
    """
    id: int
    title: str
    column: str = "todo"
    priority: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    due_date: Optional[date] = None
    timer: int = 0
    note_entries: List[NoteEntry] = field(default_factory=list)
    actions: List[HistoryEntry] = field(default_factory=list)
    deleted: bool = False
    sub_kanban: Any = None

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"Task(id={self.id}, title={self.title}, column={self.column}, priority={self.priority})"

    def clone(self) -> Task:
        return Task(
            id=self.id,
            title=self.title,
            column=self.column,
            priority=self.priority,
            tags=list(self.tags),
            due_date=self.due_date,
            timer=self.timer,
            note_entries=list(self.note_entries),
            actions=list(self.actions),
            deleted=self.deleted,
            sub_kanban=copy.deepcopy(self.sub_kanban),
        )

    def overwrite_from(self, other: Task) -> None:
        """Replace every field except id with the values of other (cloned)."""
        fresh = other.clone()
        self.title = fresh.title
        self.column = fresh.column
        self.priority = fresh.priority
        self.tags = fresh.tags
        self.due_date = fresh.due_date
        self.timer = fresh.timer
        self.note_entries = fresh.note_entries
        self.actions = fresh.actions
        self.deleted = fresh.deleted
        self.sub_kanban = fresh.sub_kanban

    def log(self, action: str, type_: str) -> None:
        self.actions.append(HistoryEntry(action=action, timestamp=now_stamp(), type=type_))

    # -------------------- serialization --------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'column': self.column,
            'priority': self.priority,
            'tags': list(self.tags),
            'dueDate': self.due_date.isoformat() if self.due_date else None,
            'timer': self.timer,
            'noteEntries': [n.to_dict() for n in self.note_entries],
            'actions': [a.to_dict() for a in self.actions],
            'deleted': self.deleted,
            'subKanban': copy.deepcopy(self.sub_kanban),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Task:
        """Build a validated Task from its JSON form.

        Raises InvalidField / InvalidColumn for records that cannot be trusted.
        Tags past MAX_TAGS_PER_TASK are dropped with a warning so the loaded
        task can still round-trip through the Board's snapshot checks.
        """
        _require_mapping('task', raw)
        tid = raw.get('id')
        if isinstance(tid, bool) or not isinstance(tid, int):
            raise InvalidField('id', f'expected an integer, got {tid!r}')
        tags = normalize_tags(raw.get('tags') or [])
        if len(tags) > MAX_TAGS_PER_TASK:
            logger.warning("task %s has %d tags; keeping the first %d",
                           tid, len(tags), MAX_TAGS_PER_TASK)
            del tags[MAX_TAGS_PER_TASK:]
        deleted = raw.get('deleted', False)
        if not isinstance(deleted, bool):
            raise InvalidField('deleted', f'expected true or false, got {deleted!r}')
        return cls(
            id=tid,
            title=validate_title(raw.get('title')),
            column=validate_column(raw.get('column') or 'todo'),
            priority=normalize_priority(raw.get('priority')),
            tags=tags,
            due_date=parse_due_date(raw.get('dueDate')),
            timer=validate_timer(raw.get('timer') or 0),
            note_entries=[NoteEntry.from_dict(n) for n in _entry_list('noteEntries', raw)],
            actions=[HistoryEntry.from_dict(a) for a in _entry_list('actions', raw)],
            deleted=deleted,
            sub_kanban=copy.deepcopy(raw.get('subKanban')),
        )


def _require_mapping(name: str, raw: Any) -> None:
    if not isinstance(raw, MappingABC):
        raise InvalidField(name, f'expected an object, got {raw!r}')


def _entry_list(key: str, raw: Mapping[str, Any]) -> List[Any]:
    value = raw.get(key) or []
    if not isinstance(value, list):
        raise InvalidField(key, f'expected a list, got {type(value).__name__}')
    return value


# -------------------- field validation --------------------
def validate_title(title: Any) -> str:
    trimmed = str(title or '').strip()
    if not trimmed:
        raise InvalidField('title', 'must not be empty')
    return trimmed[:MAX_TITLE_LENGTH]


def validate_column(column: Any) -> str:
    if column not in COLUMNS:
        raise InvalidColumn(column)
    return column


def normalize_priority(priority: Any) -> Optional[str]:
    if priority is None or priority == '' or priority == 'none':
        return None
    if priority not in PRIORITIES:
        raise InvalidField('priority', f'{priority!r} is not one of none/low/medium/high')
    return priority


def normalize_tags(tags: Any) -> List[str]:
    """Drop duplicates keeping first occurrence. The size cap is enforced by callers."""
    if isinstance(tags, str) or not hasattr(tags, '__iter__'):
        raise InvalidField('tags', 'expected a list of tag ids')
    seen: List[str] = []
    for tag in tags:
        tag = str(tag)
        if tag not in seen:
            seen.append(tag)
    return seen


def validate_timer(minutes: Any) -> int:
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidField('timer', f'expected whole minutes, got {minutes!r}')
    if minutes < 0:
        raise InvalidField('timer', 'must not be negative')
    return minutes


def parse_due_date(value: Any) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise InvalidField('dueDate', f'{value!r} is not an ISO date') from None


# -------------------- display helpers --------------------
def column_name(column: str) -> str:
    return COLUMN_NAMES.get(column, '')


def priority_label(priority: Optional[str]) -> str:
    return priority.capitalize() if priority in PRIORITIES else 'None'


def format_time(minutes: int) -> str:
    """45 -> "45m", 90 -> "1h 30m", 120 -> "2h"."""
    if minutes < 60:
        return f"{minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"
