"""Bounded, persisted trash of deleted task snapshots.

Decisions:
- Newest entry first; past max_items the oldest entries are dropped.
- One entry per task id: trashing an id that is already there replaces it.
- Independent of the undo log. Restoring from trash does not touch the
  action history and undoing a delete does not empty the trash.
- A failed save is logged and leaves the in-memory list authoritative;
  `dirty` stays set until a later save succeeds.
"""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from errors import KanbanError, PersistenceFailure
from models import Task
from storage import KeyValueStore, migrate_record

logger = logging.getLogger(__name__)

TRASH_KEY = 'taskhubTrash'
TRASH_MAX_ITEMS = 20


@dataclass(frozen=True)
class TrashEntry:
    task: Task
    trashed_at: float

    def to_dict(self) -> Dict[str, Any]:
        data = self.task.to_dict()
        data['trashedAt'] = int(self.trashed_at * 1000)
        return data

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> TrashEntry:
        stamp = raw.get('trashedAt') or 0
        if isinstance(stamp, bool) or not isinstance(stamp, (int, float)):
            stamp = 0
        return cls(task=Task.from_dict(migrate_record(raw)), trashed_at=stamp / 1000)


class Trash:
    def __init__(self, store: KeyValueStore, key: str = TRASH_KEY,
                 max_items: int = TRASH_MAX_ITEMS, clock: Callable[[], float] = time.time):
        self.store = store
        self.key = key
        self.max_items = max_items
        self.clock = clock
        self.dirty = False
        self._entries: List[TrashEntry] = []
        self._load()

    def _load(self) -> None:
        raw = self.store.get(self.key)
        if raw is None:
            return
        if not isinstance(raw, list):
            logger.warning("saved trash is not a list; ignoring it")
            return
        for item in raw:
            if not isinstance(item, dict):
                logger.warning("skipping malformed trash entry %r", item)
                continue
            try:
                self._entries.append(TrashEntry.from_dict(item))
            except KanbanError as exc:
                logger.warning("skipping trash entry %r: %s", item.get('id'), exc)
        del self._entries[self.max_items:]

    def _save(self) -> bool:
        try:
            self.store.set(self.key, [entry.to_dict() for entry in self._entries])
        except PersistenceFailure as exc:
            logger.warning("trash not saved: %s", exc)
            self.dirty = True
            return False
        self.dirty = False
        return True

    def flush(self) -> bool:
        """Retry saving; True when the stored trash matches memory."""
        return self._save()

    def _index(self, task_id: int) -> Optional[int]:
        for idx, entry in enumerate(self._entries):
            if entry.task.id == task_id:
                return idx
        return None

    # -------------------- operations --------------------
    def move_to_trash(self, task: Optional[Task]) -> None:
        if task is None:
            return
        existing = self._index(task.id)
        if existing is not None:
            del self._entries[existing]
        self._entries.insert(0, TrashEntry(task.clone(), self.clock()))
        while len(self._entries) > self.max_items:
            evicted = self._entries.pop()
            logger.debug("trash full; dropped task %s", evicted.task.id)
        self._save()

    def restore_from_trash(self, task_id: int) -> Optional[Task]:
        """Remove the entry and hand back its task with the deleted flag cleared."""
        idx = self._index(task_id)
        if idx is None:
            return None
        entry = self._entries.pop(idx)
        self._save()
        task = entry.task.clone()
        task.deleted = False
        return task

    def permanently_delete(self, task_id: int) -> bool:
        idx = self._index(task_id)
        if idx is None:
            return False
        del self._entries[idx]
        self._save()
        return True

    def empty_trash(self) -> None:
        self._entries = []
        self._save()

    # -------------------- queries --------------------
    def get_trashed_tasks(self) -> List[TrashEntry]:
        return [TrashEntry(entry.task.clone(), entry.trashed_at) for entry in self._entries]

    def get_trash_count(self) -> int:
        return len(self._entries)

    def ids(self) -> List[int]:
        return [entry.task.id for entry in self._entries]

    def __contains__(self, task_id: object) -> bool:
        return any(entry.task.id == task_id for entry in self._entries)
