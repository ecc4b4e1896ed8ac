import unittest

from models import Task
from sorting import priority_rank, sort_board, sort_column


def _tasks():
    return [
        Task(id=1, title='high', priority='high'),
        Task(id=2, title='none', priority=None),
        Task(id=3, title='low', priority='low'),
    ]


class TestPrioritySort(unittest.TestCase):
    def test_todo_puts_untriaged_first(self) -> None:
        self.assertEqual(sort_column('todo', _tasks()), [2, 1, 3])

    def test_other_columns_put_untriaged_last(self) -> None:
        for column in ('inProgress', 'onHold', 'done'):
            self.assertEqual(sort_column(column, _tasks()), [1, 3, 2])

    def test_same_priority_newer_first(self) -> None:
        tasks = [Task(id=10, title='a', priority='medium'), Task(id=12, title='b', priority='medium'),
                 Task(id=11, title='c', priority='medium')]
        self.assertEqual(sort_column('done', tasks), [12, 11, 10])
        self.assertEqual(sort_column('todo', tasks), [12, 11, 10])

    def test_missing_or_unknown_priority_ranks_as_none(self) -> None:
        self.assertEqual(priority_rank(None, 'todo'), 0)
        self.assertEqual(priority_rank('bogus', 'todo'), 0)
        self.assertEqual(priority_rank(None, 'done'), 3)
        self.assertEqual(priority_rank('bogus', 'inProgress'), 3)

    def test_sort_board_groups_and_skips_deleted(self) -> None:
        tasks = _tasks() + [Task(id=4, title='gone', deleted=True),
                            Task(id=5, title='wip', column='inProgress', priority='low'),
                            Task(id=6, title='wip2', column='inProgress', priority='high')]
        ordered = sort_board(tasks)
        self.assertEqual(ordered['todo'], [2, 1, 3])
        self.assertEqual(ordered['inProgress'], [6, 5])
        self.assertEqual(ordered['onHold'], [])


if __name__ == "__main__":
    unittest.main()
