"""Search, column and tag filtering of cards, plus column header counts.

Rules are checked in order and stop at the first failure:

1. soft-deleted tasks are never visible;
2. a column filter hides every other column;
3. a tag filter keeps tasks sharing at least one tag with it, compared by
   display name (case-insensitive), falling back to the tag id;
4. a search term must appear in the title, the plain text of any note, the
   tag ids or the priority name.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from html.parser import HTMLParser
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from models import COLUMNS, Task, validate_column

TagResolver = Callable[[str], Optional[str]]


class _TextExtractor(HTMLParser):
    _SKIP = frozenset({'script', 'style'})

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: List[str] = []
        self._skipping = 0

    def handle_starttag(self, tag, attrs):
        if tag in self._SKIP:
            self._skipping += 1

    def handle_endtag(self, tag):
        if tag in self._SKIP and self._skipping:
            self._skipping -= 1

    def handle_data(self, data):
        if not self._skipping:
            self.parts.append(data)


def html_to_text(html: Optional[str]) -> str:
    """Text content of an HTML fragment, nodes concatenated as a browser would."""
    if not html:
        return ''
    parser = _TextExtractor()
    parser.feed(html)
    parser.close()
    return ''.join(parser.parts)


@dataclass(frozen=True)
class FilterState:
    search_term: str = ''
    column_filter: Optional[str] = None
    tag_filter: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, 'search_term', (self.search_term or '').strip().lower())
        object.__setattr__(self, 'tag_filter', tuple(self.tag_filter or ()))
        if self.column_filter is not None:
            validate_column(self.column_filter)

    def is_active(self) -> bool:
        return bool(self.search_term) or self.column_filter is not None or bool(self.tag_filter)

    def with_search(self, term: str) -> FilterState:
        return replace(self, search_term=term)

    def with_column(self, column: Optional[str]) -> FilterState:
        return replace(self, column_filter=column)

    def with_tags(self, tags: Iterable[str]) -> FilterState:
        return replace(self, tag_filter=tuple(tags))


def _tag_names(tag_ids: Iterable[str], resolve: Optional[TagResolver]) -> Set[str]:
    names: Set[str] = set()
    for tag_id in tag_ids:
        name = resolve(tag_id) if resolve else None
        names.add((name or tag_id).lower())
    return names


def searchable_text(task: Task) -> str:
    parts: List[str] = []
    if task.title:
        parts.append(task.title.lower())
    for entry in task.note_entries:
        text = html_to_text(entry.notes_html)
        if text:
            parts.append(text.lower())
    parts.extend(tag.lower() for tag in task.tags)
    if task.priority:
        parts.append(task.priority.lower())
    return ' '.join(parts)


def is_visible(task: Task, state: FilterState, resolve_tag_name: Optional[TagResolver] = None) -> bool:
    if task.deleted:
        return False
    if state.column_filter and task.column != state.column_filter:
        return False
    if state.tag_filter:
        wanted = _tag_names(state.tag_filter, resolve_tag_name)
        if not wanted & _tag_names(task.tags, resolve_tag_name):
            return False
    if state.search_term and state.search_term not in searchable_text(task):
        return False
    return True


@dataclass(frozen=True)
class ColumnCount:
    visible: int
    total: int

    def label(self, active: bool) -> str:
        """Header text: "(v/t)" while filtering, "(n)" otherwise, "" for an empty column."""
        if active:
            return f'({self.visible}/{self.total})'
        return f'({self.visible})' if self.visible else ''


def column_counts(tasks: Iterable[Task], state: FilterState,
                  resolve_tag_name: Optional[TagResolver] = None) -> Dict[str, ColumnCount]:
    visible = {column: 0 for column in COLUMNS}
    total = {column: 0 for column in COLUMNS}
    for task in tasks:
        if task.deleted or task.column not in total:
            continue
        total[task.column] += 1
        if is_visible(task, state, resolve_tag_name):
            visible[task.column] += 1
    return {column: ColumnCount(visible[column], total[column]) for column in COLUMNS}
