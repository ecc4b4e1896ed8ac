import json
import tempfile
import unittest
from pathlib import Path

from click.testing import CliRunner

from cli import CLI
from kanban import Kanban
from main import main
from render import ANSI_RE, BoardView, compute_column_widths, wrap_words
from storage import MemoryStore


def _plain(lines):
    return [ANSI_RE.sub('', line) for line in lines]


class TestCommands(unittest.TestCase):
    def setUp(self) -> None:
        self.kanban = Kanban(MemoryStore())
        self.cli = CLI(self.kanban, alt_screen=False)

    def test_add_move_and_priority(self) -> None:
        self.cli.handle_command('add Buy milk')
        self.cli.handle_command('mv 1 ip')
        self.cli.handle_command('pri 1 h')
        task = self.kanban.board.get(1)
        self.assertEqual((task.title, task.column, task.priority), ('Buy milk', 'inProgress', 'high'))
        self.assertEqual(self.cli.messages, [])

    def test_bad_input_messages(self) -> None:
        self.cli.handle_command('mv 1')
        self.cli.handle_command('mv x d')
        self.cli.handle_command('mv 1 later')
        self.cli.handle_command('mv 9 d')
        self.cli.handle_command('frobnicate')
        self.assertEqual(self.cli.messages, [
            'Usage: mv <id> <column>; columns: t/ip/oh/d',
            'Invalid id.',
            'Invalid column.',
            'Task id 9 not found.',
            "Unknown command. Type 'help' for instructions.",
        ])

    def test_rm_undo_and_trash(self) -> None:
        self.cli.handle_command('add Old thing')
        self.cli.handle_command('rm 1')
        self.cli.handle_command('trash')
        self.assertEqual(self.cli.messages, ['Task 1 moved to trash.', 'Trash (1):', '  1. Old thing'])
        self.cli.handle_command('u')
        self.assertFalse(self.kanban.board.get(1).deleted)
        self.assertTrue(self.kanban.notices[-1].text.startswith('Undone: '))

    def test_restore_messages(self) -> None:
        self.cli.handle_command('add a')
        self.cli.handle_command('restore 1')
        self.cli.handle_command('rm 1')
        self.cli.handle_command('undo')
        self.cli.handle_command('restore 1')
        self.assertEqual(self.cli.messages, ['Task id 1 is not in the trash.', 'Task 1 moved to trash.'])
        self.assertEqual(self.kanban.notices[-1].text, 'Task 1 is already on the board; trash entry kept.')

    def test_purge_and_empty_trash(self) -> None:
        self.cli.handle_command('add a')
        self.cli.handle_command('add b')
        self.cli.handle_command('rm 1')
        self.cli.handle_command('rm 2')
        self.cli.messages.clear()
        self.cli.handle_command('purge 1')
        self.cli.handle_command('purge 1')
        self.cli.handle_command('empty-trash')
        self.assertEqual(self.cli.messages, [
            'Task permanently deleted.',
            'Task id 1 is not in the trash.',
            'Trash emptied (1 item(s)).',
        ])

    def test_tag_limit_is_reported(self) -> None:
        self.cli.handle_command('add t')
        for tag in 'abcdef':
            self.cli.handle_command(f'tag 1 {tag}')
        self.assertEqual(self.kanban.board.get(1).tags, list('abcde'))
        self.assertEqual(self.cli.messages, ['Task 1 already has the maximum of 5 tags.'])

    def test_time_and_due(self) -> None:
        self.cli.handle_command('add t')
        self.cli.handle_command('time 1 +90')
        self.cli.handle_command('due 1 2026-12-24')
        self.cli.handle_command('due 1 soon')
        self.assertEqual(self.cli.messages[0], 'Worked time: 1h 30m')
        self.assertEqual(self.kanban.board.get(1).due_date.isoformat(), '2026-12-24')
        self.assertTrue(self.cli.messages[1].startswith('Invalid dueDate'))

    def test_filters(self) -> None:
        self.cli.handle_command('add alpha')
        self.cli.handle_command('add beta')
        self.cli.handle_command('find alp')
        self.assertEqual(self.kanban.filters.search_term, 'alp')
        self.cli.handle_command('filter col d')
        self.assertEqual(self.kanban.filters.column_filter, 'done')
        self.cli.handle_command('filter col all')
        self.assertIsNone(self.kanban.filters.column_filter)
        self.cli.handle_command('filter tag bug urgent')
        self.assertEqual(self.kanban.filters.tag_filter, ('bug', 'urgent'))
        self.cli.handle_command('clear')
        self.assertFalse(self.kanban.filters.is_active())

    def test_tag_definitions(self) -> None:
        self.cli.handle_command('newtag Needs Design')
        self.cli.handle_command('newtag needs design')
        self.cli.handle_command('deltag nope')
        self.assertEqual(self.cli.messages, [
            'Tag "needs-design" created.',
            'A tag with that name already exists.',
            'No tag "nope".',
        ])

    def test_show(self) -> None:
        self.cli.handle_command('add Write report')
        self.cli.handle_command('note 1 first draft')
        self.cli.handle_command('show 1')
        self.assertEqual(self.cli.messages[0], '1. Write report')
        self.assertIn('  Note 1', self.cli.messages[2])


class TestBoardView(unittest.TestCase):
    def test_lines_show_counts_and_cards(self) -> None:
        kanban = Kanban(MemoryStore())
        kanban.add_task('Buy milk')
        kanban.add_task('Ship it', column='done', priority='high')
        lines = _plain(BoardView(kanban).lines(120))
        self.assertIn('TO DO (1)', lines[0])
        self.assertIn('DONE (1)', lines[0])
        self.assertTrue(lines[2].startswith('1. Buy milk'))
        self.assertIn('2. !!! Ship it', lines[2])
        self.assertIn('(empty)', lines[2])

    def test_filtered_header(self) -> None:
        kanban = Kanban(MemoryStore())
        kanban.add_task('alpha')
        kanban.add_task('beta')
        kanban.set_search('alpha')
        self.assertIn('TO DO (1/2)', _plain(BoardView(kanban).lines(120))[0])

    def test_column_widths_fit_terminal(self) -> None:
        widths = compute_column_widths({'todo': 80, 'inProgress': 10, 'onHold': 10, 'done': 10}, 100)
        self.assertLessEqual(sum(widths.values()) + 9, 100)
        self.assertTrue(all(w >= 16 for w in widths.values()))

    def test_wrap_words(self) -> None:
        self.assertEqual(wrap_words('one two three', 7), ['one two', 'three'])
        self.assertEqual(wrap_words('abcdefghij', 4), ['abcd', 'efgh', 'ij'])


class TestMain(unittest.TestCase):
    def test_session_saves_to_data_dir(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            result = CliRunner().invoke(
                main, ['--data-dir', tmp, '--no-alt-screen'], input='add Buy milk\nexit\n')
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn('Goodbye.', result.output)
            saved = json.loads((Path(tmp) / 'kanbanNotes.json').read_text())
            self.assertEqual([t['title'] for t in saved], ['Buy milk'])

    def test_end_of_input_exits_cleanly(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            result = CliRunner().invoke(main, ['--data-dir', tmp, '--no-alt-screen'], input='')
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn('Interrupted. Goodbye.', result.output)


if __name__ == "__main__":
    unittest.main()
