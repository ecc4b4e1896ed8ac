"""Terminal rendering of the board: four side-by-side columns.

Cards come from Kanban.visible_columns(), so they are already filtered and
in priority order. Headers carry the column count ("(3)" or "(1/3)" while a
filter is active).
"""
import re, shutil
from typing import Dict, List, Mapping

from due import due_status, format_due_date
from kanban import Kanban
from models import COLUMNS, Task, format_time
from theme import color, BOLD, COLUMN_COLOR, DUE_COLOR, EMPTY_COLOR, HEADER_COLOR, ID_COLOR, PRIORITY_COLOR

HEADER_TITLES: Dict[str, str] = {"todo": "TO DO", "inProgress": "IN PROGRESS", "onHold": "ON HOLD", "done": "DONE"}
PRIORITY_MARKS: Dict[str, str] = {"high": "!!!", "medium": "!!", "low": "!"}
MIN_COL_WIDTH = 16
SEP = " | "
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def visible_len(s: str) -> int:
    return len(ANSI_RE.sub('', s))


def compute_column_widths(desired: Mapping[str, int], term_width: int) -> Dict[str, int]:
    """Shrink the widest column until the board fits, or share out spare width."""
    sep_total = len(SEP) * (len(COLUMNS) - 1)
    widths = {c: max(MIN_COL_WIDTH, desired.get(c, 0)) for c in COLUMNS}
    if sum(widths.values()) + sep_total > term_width:
        target = max(term_width - sep_total, len(COLUMNS) * MIN_COL_WIDTH)
        while sum(widths.values()) > target:
            widest = max(COLUMNS, key=lambda c: widths[c])
            if widths[widest] <= MIN_COL_WIDTH:
                break
            widths[widest] -= 1
    else:
        extra = term_width - (sum(widths.values()) + sep_total)
        for i in range(extra):
            widths[COLUMNS[i % len(COLUMNS)]] += 1
    return widths


def wrap_words(text: str, limit: int) -> List[str]:
    lines: List[str] = []
    current = ''
    for word in text.split():
        while len(word) > limit:
            if current:
                lines.append(current)
                current = ''
            lines.append(word[:limit])
            word = word[limit:]
        candidate = word if not current else current + ' ' + word
        if len(candidate) <= limit:
            current = candidate
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


class BoardView:
    def __init__(self, kanban: Kanban):
        self.kanban = kanban

    def display(self) -> None:
        for line in self.lines(shutil.get_terminal_size((120, 30)).columns):
            print(line)

    def lines(self, term_width: int) -> List[str]:
        columns = self.kanban.visible_columns()
        counts = self.kanban.column_counts()
        active = self.kanban.filters.is_active()
        headers = {c: f'{HEADER_TITLES[c]} {counts[c].label(active)}'.rstrip() for c in COLUMNS}
        desired = {c: max([len(headers[c])] + [len(self._plain_title(t)) for t in columns[c]]) for c in COLUMNS}
        widths = compute_column_widths(desired, term_width)
        cells = {c: self._column_lines(columns[c], c, widths[c]) for c in COLUMNS}
        out = [SEP.join(self._pad(color(headers[c], HEADER_COLOR, BOLD), widths[c]) for c in COLUMNS),
               SEP.join(color('-' * widths[c], HEADER_COLOR) for c in COLUMNS)]
        for r in range(max(len(cells[c]) for c in COLUMNS)):
            row = [self._pad(cells[c][r], widths[c]) if r < len(cells[c]) else ' ' * widths[c] for c in COLUMNS]
            out.append(SEP.join(row).rstrip())
        return out

    # ---- cards ----
    @staticmethod
    def _plain_title(task: Task) -> str:
        mark = PRIORITY_MARKS.get(task.priority or '', '')
        return f"{task.id}. {mark + ' ' if mark else ''}{task.title}"

    def _column_lines(self, tasks: List[Task], column: str, width: int) -> List[str]:
        if not tasks:
            return [color('(empty)', EMPTY_COLOR)]
        acc: List[str] = []
        for task in tasks:
            acc.extend(self._card_lines(task, column, width))
        return acc

    def _card_lines(self, task: Task, column: str, width: int) -> List[str]:
        prefix = f"{task.id}. "
        indent = ' ' * len(prefix)
        limit = max(1, width - len(prefix))
        title_lines = wrap_words(task.title, limit) or ['']
        body = [color(line, COLUMN_COLOR.get(column, '')) for line in title_lines]
        mark = PRIORITY_MARKS.get(task.priority or '')
        # priority marker only when it fits on the first line
        if mark and len(mark) + 1 + len(title_lines[0]) <= limit:
            body[0] = color(mark, PRIORITY_COLOR[task.priority]) + ' ' + body[0]
        details = self._details(task)
        if details and visible_len(details) <= limit:
            body.append(details)
        return [(color(prefix.rstrip(), ID_COLOR, BOLD) + ' ' if i == 0 else indent) + line for i, line in enumerate(body)]

    def _details(self, task: Task) -> str:
        bits: List[str] = []
        if task.timer:
            bits.append(format_time(task.timer))
        if task.tags:
            bits.append(' '.join('#' + self.kanban.tags.display_name(t) for t in task.tags))
        if task.due_date:
            bits.append(color('due ' + format_due_date(task.due_date), DUE_COLOR[due_status(task)]))
        return '  '.join(bits)

    @staticmethod
    def _pad(text: str, width: int) -> str:
        pad = width - visible_len(text)
        return text + ' ' * pad if pad > 0 else text
