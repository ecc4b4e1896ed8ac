"""Persistence helpers: key-value backends and task list load/save.

The engine only needs get(key) -> JSON or None and set(key, JSON). set
raises PersistenceFailure when the backend is full or unwritable; callers
keep their in-memory state and report the failure.

Saved keys keep the browser version's names ("kanbanNotes", "taskhubTrash",
"taskhubTags") so an exported localStorage dump can be dropped into the
data directory as <key>.json files.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from errors import KanbanError, PersistenceFailure
from models import Task, now_stamp

logger = logging.getLogger(__name__)

TASKS_KEY = 'kanbanNotes'
NEXT_ID_KEY = 'kanbanNextId'

LEGACY_COLUMNS = {
    'in-progress': 'inProgress',
    'doing': 'inProgress',
    'on-hold': 'onHold',
}


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class JsonFileStore:
    """One pretty-printed <key>.json file per key inside directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f'{key}.json'

    def get(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("could not read %s: %s", path, exc)
            return None

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_name: Optional[str] = None
        try:
            text = json.dumps(value, indent=4)
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile('w', dir=self.directory, suffix='.tmp',
                                             delete=False, encoding='utf-8') as f:
                tmp_name = f.name
                f.write(text)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceFailure(key, str(exc)) from exc


class MemoryStore:
    """In-process backend. quota caps the total size of stored JSON text in characters."""

    def __init__(self, quota: Optional[int] = None, data: Optional[Mapping[str, Any]] = None):
        self.quota = quota
        self._data: Dict[str, str] = {}
        for key, value in (data or {}).items():
            self._data[key] = json.dumps(value)

    def get(self, key: str) -> Any:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(key, str(exc)) from exc
        if self.quota is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(encoded) > self.quota:
                raise PersistenceFailure(key, 'quota exceeded')
        self._data[key] = encoded

    def keys(self) -> List[str]:
        return list(self._data)


class Storage:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def load_tasks(self) -> List[Task]:
        """Load the task list, migrating older record shapes.

        Records that still cannot be read are logged and skipped.
        Missing key -> empty list.
        """
        data = self.store.get(TASKS_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("%s is not a list; starting with an empty board", TASKS_KEY)
            return []
        tasks: List[Task] = []
        for raw in data:
            if not isinstance(raw, dict):
                logger.warning("skipping malformed task record %r", raw)
                continue
            try:
                tasks.append(Task.from_dict(migrate_record(raw)))
            except KanbanError as exc:
                logger.warning("skipping task %r: %s", raw.get('id'), exc)
        return tasks

    def load_next_id(self) -> int:
        value = self.store.get(NEXT_ID_KEY)
        return value if isinstance(value, int) and not isinstance(value, bool) else 1

    def save_tasks(self, tasks: List[Dict[str, Any]], next_id: int) -> None:
        self.store.set(TASKS_KEY, tasks)
        self.store.set(NEXT_ID_KEY, next_id)


def migrate_record(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Bring an older saved task up to the current shape.

    - single "notes" field -> "noteEntries" list
    - hyphenated column keys -> camelCase
    - float ids written by Date.now() -> int
    """
    record = dict(raw)
    if record.get('notes') and not record.get('noteEntries'):
        actions = record.get('actions') or []
        first_stamp = actions[0].get('timestamp') if actions and isinstance(actions[0], dict) else None
        record['noteEntries'] = [{
            'timestamp': first_stamp or now_stamp(),
            'notesHTML': record['notes'],
            'images': record.get('images') or [],
        }]
    record.pop('notes', None)
    record.setdefault('noteEntries', [])
    column = record.get('column')
    if column in LEGACY_COLUMNS:
        record['column'] = LEGACY_COLUMNS[column]
    tid = record.get('id')
    if isinstance(tid, float) and tid.is_integer():
        record['id'] = int(tid)
    elif isinstance(tid, str) and tid.isdigit():
        record['id'] = int(tid)
    return record
