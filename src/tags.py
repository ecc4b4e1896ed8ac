"""Tag definitions: ids, display names and colours.

Tasks store tag ids; the registry turns an id into the name shown on cards
and used by the tag filter. A fresh install is seeded with four tags.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from errors import InvalidField, PersistenceFailure
from storage import KeyValueStore

logger = logging.getLogger(__name__)

TAGS_KEY = 'taskhubTags'

TAG_COLORS: Tuple[Tuple[str, str], ...] = (
    ('red', '#ef4444'),
    ('orange', '#f97316'),
    ('yellow', '#eab308'),
    ('green', '#22c55e'),
    ('teal', '#14b8a6'),
    ('blue', '#3b82f6'),
    ('indigo', '#6366f1'),
    ('purple', '#a855f7'),
    ('pink', '#ec4899'),
    ('gray', '#6b7280'),
)
DEFAULT_COLOR = len(TAG_COLORS) - 1


@dataclass(frozen=True)
class Tag:
    id: str
    name: str
    color_index: int = DEFAULT_COLOR

    @property
    def color(self) -> str:
        if 0 <= self.color_index < len(TAG_COLORS):
            return TAG_COLORS[self.color_index][1]
        return TAG_COLORS[DEFAULT_COLOR][1]

    def to_dict(self) -> Dict[str, object]:
        return {'id': self.id, 'name': self.name, 'colorIndex': self.color_index}


DEFAULT_TAGS: Tuple[Tag, ...] = (
    Tag('bug', 'Bug', 0),
    Tag('feature', 'Feature', 5),
    Tag('urgent', 'Urgent', 0),
    Tag('review', 'Review', 7),
)


def slugify(name: str) -> str:
    return re.sub(r'[^a-z0-9]', '-', name.lower())


def _clamp_color(index: int) -> int:
    return min(max(0, index), len(TAG_COLORS) - 1)


class TagRegistry:
    def __init__(self, store: KeyValueStore, key: str = TAGS_KEY):
        self.store = store
        self.key = key
        self.dirty = False
        self._tags: List[Tag] = []
        self._load()

    def _load(self) -> None:
        raw = self.store.get(self.key)
        if raw is None:
            self._tags = list(DEFAULT_TAGS)
            self._save()
            return
        if not isinstance(raw, list):
            logger.warning("saved tags are not a list; ignoring them")
            return
        for item in raw:
            try:
                self._tags.append(Tag(str(item['id']), str(item['name']),
                                      _clamp_color(int(item.get('colorIndex', DEFAULT_COLOR)))))
            except (KeyError, TypeError, ValueError, AttributeError):
                logger.warning("skipping malformed tag %r", item)

    def _save(self) -> bool:
        try:
            self.store.set(self.key, [tag.to_dict() for tag in self._tags])
        except PersistenceFailure as exc:
            logger.warning("tags not saved: %s", exc)
            self.dirty = True
            return False
        self.dirty = False
        return True

    def flush(self) -> bool:
        return self._save()

    # -------------------- queries --------------------
    def all(self) -> List[Tag]:
        return list(self._tags)

    def get(self, tag_id: str) -> Optional[Tag]:
        for tag in self._tags:
            if tag.id == tag_id:
                return tag
        return None

    def resolve_name(self, tag_id: str) -> Optional[str]:
        tag = self.get(tag_id)
        return tag.name if tag else None

    def display_name(self, tag_id: str) -> str:
        return self.resolve_name(tag_id) or tag_id

    # -------------------- operations --------------------
    def create_tag(self, name: str, color_index: int = DEFAULT_COLOR) -> Optional[Tag]:
        """Add a tag; None when a tag with the same id already exists."""
        name = (name or '').strip()
        if not name:
            raise InvalidField('tag name', 'must not be empty')
        tag = Tag(slugify(name), name, _clamp_color(color_index))
        if self.get(tag.id):
            return None
        self._tags.append(tag)
        self._save()
        return tag

    def update_tag(self, tag_id: str, name: Optional[str] = None,
                   color_index: Optional[int] = None) -> bool:
        for idx, tag in enumerate(self._tags):
            if tag.id != tag_id:
                continue
            if name is not None and name.strip():
                tag = replace(tag, name=name.strip())
            if color_index is not None:
                tag = replace(tag, color_index=_clamp_color(color_index))
            self._tags[idx] = tag
            self._save()
            return True
        return False

    def delete_tag(self, tag_id: str) -> bool:
        """Drop the definition. Removing the id from tasks is the caller's job."""
        tag = self.get(tag_id)
        if tag is None:
            return False
        self._tags.remove(tag)
        self._save()
        return True
