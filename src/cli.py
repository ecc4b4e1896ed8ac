"""Interactive loop for the terminal board.

Column keys are camelCase internally; the short aliases below are what
people type. Every command saves through Kanban as it runs, so leaving the
loop only has to retry saves that failed earlier.
"""
from datetime import date
from typing import Callable, Dict, List, Optional

from due import format_relative
from errors import KanbanError
from kanban import Kanban, Notice
from models import COLUMN_NAMES, format_time, priority_label
from render import BoardView


def _clear_screen() -> None:
    print("\033[3J\033[H\033[2J\033[H", end="", flush=True)


def _enter_alt_screen() -> None:
    print("\033[?1049h", end="", flush=True)


def _leave_alt_screen() -> None:
    print("\033[?1049l", end="", flush=True)


COLUMN_ALIASES: Dict[str, str] = {
    't': 'todo', 'todo': 'todo',
    'ip': 'inProgress', 'inprogress': 'inProgress', 'in-progress': 'inProgress',
    'oh': 'onHold', 'onhold': 'onHold', 'on-hold': 'onHold', 'hold': 'onHold',
    'd': 'done', 'done': 'done',
}

PRIORITY_ALIASES: Dict[str, Optional[str]] = {
    'n': None, 'none': None,
    'l': 'low', 'low': 'low',
    'm': 'medium', 'med': 'medium', 'medium': 'medium',
    'h': 'high', 'high': 'high',
}

NOTICE_PREFIX = {'info': '', 'success': '', 'warning': 'Warning: ', 'error': 'Error: '}


def print_notice(notice: Notice) -> None:
    print(NOTICE_PREFIX.get(notice.level, '') + notice.text)


def _parse_id(raw: str) -> Optional[int]:
    raw = raw.rstrip('.')
    return int(raw) if raw.isdigit() else None


class CLI:
    def __init__(self, kanban: Kanban, alt_screen: bool = True):
        self.kanban = kanban
        self.view = BoardView(kanban)
        self.alt_screen = alt_screen
        self.messages: List[str] = []
        self._commands: Dict[str, Callable[[List[str]], None]] = {
            'add': self._cmd_add,
            'mv': self._cmd_mv, 'move': self._cmd_mv,
            'pri': self._cmd_priority, 'priority': self._cmd_priority,
            'time': self._cmd_time,
            'tag': self._cmd_tag, 'untag': self._cmd_untag,
            'due': self._cmd_due,
            'note': self._cmd_note,
            'rename': self._cmd_rename,
            'rm': self._cmd_rm, 'remove': self._cmd_rm,
            'undo': self._cmd_undo, 'u': self._cmd_undo,
            'redo': self._cmd_redo, 'r': self._cmd_redo,
            'trash': self._cmd_trash,
            'restore': self._cmd_restore,
            'purge': self._cmd_purge,
            'empty-trash': self._cmd_empty_trash,
            'find': self._cmd_find,
            'filter': self._cmd_filter,
            'clear': self._cmd_clear,
            'tags': self._cmd_tags, 'newtag': self._cmd_newtag, 'deltag': self._cmd_deltag,
            'show': self._cmd_show,
        }

    def say(self, text: str) -> None:
        self.messages.append(text)

    def run(self) -> None:
        """Main REPL loop; the board is cleared and redrawn each cycle."""
        exit_message: Optional[str] = None
        if self.alt_screen:
            _enter_alt_screen()
        try:
            while True:
                _clear_screen()
                print("Kanban Board:")
                self.view.display()
                for text in self.messages:
                    print(text)
                self.messages = []
                for notice in self.kanban.notices:
                    print_notice(notice)
                self.kanban.notices.clear()
                line = input("\n: ").strip()
                if not line:
                    continue
                lower = line.lower()
                if lower == 'help':
                    _clear_screen()
                    self._help()
                    input("\nPress Enter to return to the board...")
                    continue
                if lower == 'exit':
                    exit_message = "Goodbye."
                    break
                self.handle_command(line)
        except (KeyboardInterrupt, EOFError):
            exit_message = "Interrupted. Goodbye."
        finally:
            if self.kanban.trash.dirty:
                self.kanban.trash.flush()
            if self.alt_screen:
                _leave_alt_screen()
            if exit_message:
                print(exit_message)

    # -------------------- command dispatch --------------------
    def handle_command(self, line: str) -> None:
        tokens = line.split()
        if not tokens:
            return
        handler = self._commands.get(tokens[0].lower())
        if handler is None:
            self.say("Unknown command. Type 'help' for instructions.")
            return
        try:
            handler(tokens)
        except KanbanError as exc:
            self.say(str(exc))

    def _task_id(self, tokens: List[str], usage: str, count: int = 2) -> Optional[int]:
        if len(tokens) < count:
            self.say(f"Usage: {usage}")
            return None
        tid = _parse_id(tokens[1])
        if tid is None:
            self.say("Invalid id.")
        return tid

    # ---- editing ----
    def _cmd_add(self, tokens: List[str]) -> None:
        title = ' '.join(tokens[1:]).strip() or input("Enter task title: ").strip()
        if not title:
            self.say("Title required.")
            return
        self.kanban.add_task(title)

    def _cmd_mv(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "mv <id> <column>; columns: t/ip/oh/d", 3)
        if tid is None:
            return
        column = COLUMN_ALIASES.get(tokens[2].lower())
        if not column:
            self.say("Invalid column.")
            return
        self.kanban.move_task(tid, column)

    def _cmd_priority(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "pri <id> <none|low|medium|high>", 3)
        if tid is None:
            return
        key = tokens[2].lower()
        if key not in PRIORITY_ALIASES:
            self.say("Invalid priority.")
            return
        self.kanban.set_priority(tid, PRIORITY_ALIASES[key])

    def _cmd_time(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "time <id> <+minutes|-minutes>", 3)
        if tid is None:
            return
        try:
            minutes = int(tokens[2].rstrip('m'))
        except ValueError:
            self.say("Invalid minutes.")
            return
        task = self.kanban.add_time(tid, minutes)
        self.say(f"Worked time: {format_time(task.timer)}")

    def _cmd_tag(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "tag <id> <tag>", 3)
        if tid is not None:
            self.kanban.add_tag_to_task(tid, tokens[2])

    def _cmd_untag(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "untag <id> <tag>", 3)
        if tid is not None:
            self.kanban.remove_tag_from_task(tid, tokens[2])

    def _cmd_due(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "due <id> <YYYY-MM-DD|none>", 3)
        if tid is None:
            return
        raw = tokens[2].lower()
        if raw == 'today':
            raw = date.today().isoformat()
        self.kanban.set_due_date(tid, None if raw == 'none' else raw)

    def _cmd_note(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "note <id> <text...>", 3)
        if tid is not None:
            self.kanban.add_note(tid, ' '.join(tokens[2:]))

    def _cmd_rename(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "rename <id> <title...>", 3)
        if tid is not None:
            self.kanban.rename_task(tid, ' '.join(tokens[2:]))

    def _cmd_rm(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "rm <id>")
        if tid is not None:
            task = self.kanban.delete_task(tid)
            self.say(f'Task {task.id} moved to trash.')

    # ---- history ----
    def _cmd_undo(self, tokens: List[str]) -> None:
        self.kanban.undo()

    def _cmd_redo(self, tokens: List[str]) -> None:
        self.kanban.redo()

    # ---- trash ----
    def _cmd_trash(self, tokens: List[str]) -> None:
        entries = self.kanban.trash.get_trashed_tasks()
        if not entries:
            self.say("Trash is empty.")
            return
        self.say(f"Trash ({len(entries)}):")
        for entry in entries:
            self.say(f"  {entry.task.id}. {entry.task.title}")

    def _cmd_restore(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "restore <id>")
        if tid is None:
            return
        if tid not in self.kanban.trash:
            self.say(f"Task id {tid} is not in the trash.")
            return
        self.kanban.restore_from_trash(tid)

    def _cmd_purge(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "purge <id>")
        if tid is None:
            return
        if self.kanban.permanently_delete(tid):
            self.say("Task permanently deleted.")
        else:
            self.say(f"Task id {tid} is not in the trash.")

    def _cmd_empty_trash(self, tokens: List[str]) -> None:
        count = self.kanban.empty_trash()
        self.say(f"Trash emptied ({count} item(s)).")

    # ---- filtering ----
    def _cmd_find(self, tokens: List[str]) -> None:
        self.kanban.set_search(' '.join(tokens[1:]))

    def _cmd_filter(self, tokens: List[str]) -> None:
        if len(tokens) >= 3 and tokens[1].lower() == 'col':
            target = tokens[2].lower()
            if target == 'all':
                self.kanban.set_column_filter(None)
                return
            column = COLUMN_ALIASES.get(target)
            if not column:
                self.say("Invalid column.")
                return
            self.kanban.set_column_filter(column)
        elif len(tokens) >= 2 and tokens[1].lower() == 'tag':
            self.kanban.set_tag_filter(tokens[2:])
        else:
            self.say("Usage: filter col <column|all> | filter tag [tag...]")

    def _cmd_clear(self, tokens: List[str]) -> None:
        self.kanban.clear_filters()

    # ---- tags ----
    def _cmd_tags(self, tokens: List[str]) -> None:
        for tag in self.kanban.tags.all():
            self.say(f"  {tag.id}: {tag.name}")

    def _cmd_newtag(self, tokens: List[str]) -> None:
        name = ' '.join(tokens[1:])
        tag = self.kanban.create_tag(name)
        self.say(f'Tag "{tag.id}" created.' if tag else "A tag with that name already exists.")

    def _cmd_deltag(self, tokens: List[str]) -> None:
        if len(tokens) != 2:
            self.say("Usage: deltag <tag>")
            return
        if not self.kanban.delete_tag(tokens[1]):
            self.say(f'No tag "{tokens[1]}".')

    # ---- details ----
    def _cmd_show(self, tokens: List[str]) -> None:
        tid = self._task_id(tokens, "show <id>")
        if tid is None:
            return
        task = self.kanban.board.get(tid)
        self.say(f"{task.id}. {task.title}")
        self.say(f"  Column: {COLUMN_NAMES[task.column]}   Priority: {priority_label(task.priority)}"
                 f"   Worked: {format_time(task.timer)}")
        if task.due_date:
            self.say(f"  Due: {task.due_date.isoformat()} ({format_relative(task.due_date)})")
        if task.tags:
            self.say("  Tags: " + ', '.join(self.kanban.tags.display_name(t) for t in task.tags))
        for idx, entry in enumerate(task.note_entries, start=1):
            self.say(f"  Note {idx} [{entry.timestamp}]: {entry.notes_html}")
        for entry in task.actions:
            self.say(f"  {entry.timestamp}  {entry.action}")

    # -------------------- help --------------------
    def _help(self) -> None:
        print("Commands:")
        print("  add [title...]          Add a task to To Do (prompts when no title)")
        print("  mv <id> <column>        Move; columns: t (todo), ip (in progress), oh (on hold), d (done)")
        print("  pri <id> <level>        Priority: none/low/medium/high (n/l/m/h)")
        print("  time <id> <+m|-m>       Add or remove worked minutes")
        print("  tag|untag <id> <tag>    Add or remove a tag (max 5 per task)")
        print("  due <id> <date|none>    Set due date (YYYY-MM-DD or today)")
        print("  note <id> <text...>     Append a note")
        print("  rename <id> <title...>  Rename a task")
        print("  rm <id>                 Delete a task (goes to trash)")
        print("  undo | redo             Step through this session's changes")
        print("  trash                   List trashed tasks")
        print("  restore|purge <id>      Restore from trash / delete permanently")
        print("  empty-trash             Permanently delete everything in trash")
        print("  find [term]             Search titles, notes, tags and priority")
        print("  filter col <c|all>      Show one column")
        print("  filter tag [tags...]    Show tasks with any of the tags")
        print("  clear                   Clear all filters")
        print("  tags | newtag | deltag  List, create or delete tags")
        print("  show <id>               Task details and history")
        print("  help                    Show this help (press Enter to return)")
        print("  exit                    Leave")

