import itertools
import unittest

from models import Task
from storage import MemoryStore
from trash import TRASH_KEY, Trash


def _clock():
    ticks = itertools.count(1000)
    return lambda: float(next(ticks))


def _deleted(tid: int, title: str = 'task') -> Task:
    return Task(id=tid, title=f'{title} {tid}', deleted=True)


class TestTrash(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryStore()
        self.trash = Trash(self.store, clock=_clock())

    def test_newest_first_and_capped(self) -> None:
        for tid in range(1, 23):
            self.trash.move_to_trash(_deleted(tid))
        self.assertEqual(self.trash.get_trash_count(), 20)
        ids = self.trash.ids()
        self.assertEqual(ids[0], 22)
        self.assertEqual(ids[-1], 3)
        self.assertNotIn(1, self.trash)
        self.assertNotIn(2, self.trash)

    def test_one_entry_per_id(self) -> None:
        self.trash.move_to_trash(_deleted(1, 'old'))
        self.trash.move_to_trash(_deleted(2))
        self.trash.move_to_trash(_deleted(1, 'new'))
        self.assertEqual(self.trash.ids(), [1, 2])
        self.assertEqual(self.trash.get_trashed_tasks()[0].task.title, 'new 1')

    def test_none_is_ignored(self) -> None:
        self.trash.move_to_trash(None)
        self.assertEqual(self.trash.get_trash_count(), 0)

    def test_restore_clears_deleted_and_removes_entry(self) -> None:
        self.trash.move_to_trash(_deleted(5))
        task = self.trash.restore_from_trash(5)
        self.assertFalse(task.deleted)
        self.assertEqual(task.title, 'task 5')
        self.assertEqual(self.trash.get_trash_count(), 0)
        self.assertIsNone(self.trash.restore_from_trash(5))

    def test_entries_are_snapshots(self) -> None:
        task = _deleted(1)
        self.trash.move_to_trash(task)
        task.title = 'edited later'
        self.assertEqual(self.trash.get_trashed_tasks()[0].task.title, 'task 1')
        self.trash.get_trashed_tasks()[0].task.tags.append('x')
        self.assertEqual(self.trash.get_trashed_tasks()[0].task.tags, [])

    def test_permanently_delete_and_empty(self) -> None:
        for tid in (1, 2, 3):
            self.trash.move_to_trash(_deleted(tid))
        self.assertTrue(self.trash.permanently_delete(2))
        self.assertFalse(self.trash.permanently_delete(2))
        self.assertEqual(self.trash.ids(), [3, 1])
        self.trash.empty_trash()
        self.assertEqual(self.trash.get_trash_count(), 0)
        self.assertEqual(self.store.get(TRASH_KEY), [])

    def test_persists_across_instances(self) -> None:
        self.trash.move_to_trash(_deleted(1))
        self.trash.move_to_trash(_deleted(2))
        saved = self.store.get(TRASH_KEY)
        self.assertEqual(saved[0]['trashedAt'], 1001000)
        again = Trash(self.store)
        self.assertEqual(again.ids(), [2, 1])
        self.assertEqual(again.get_trashed_tasks()[0].trashed_at, 1001.0)
        self.assertTrue(again.get_trashed_tasks()[0].task.deleted)

    def test_failed_save_keeps_memory_and_marks_dirty(self) -> None:
        store = MemoryStore(quota=10)
        trash = Trash(store)
        trash.move_to_trash(_deleted(1))
        self.assertEqual(trash.ids(), [1])
        self.assertTrue(trash.dirty)
        self.assertIsNone(store.get(TRASH_KEY))
        store.quota = None
        self.assertTrue(trash.flush())
        self.assertFalse(trash.dirty)
        self.assertEqual(len(store.get(TRASH_KEY)), 1)

    def test_malformed_saved_trash(self) -> None:
        store = MemoryStore(data={TRASH_KEY: [
            'junk',
            {'id': 4, 'title': 'ok', 'column': 'done', 'deleted': True, 'trashedAt': 5000},
            {'id': 'x', 'title': 'bad id'},
            {'id': 6, 'title': 'legacy', 'column': 'in-progress', 'notes': '<p>hi</p>'},
        ]})
        trash = Trash(store)
        self.assertEqual(trash.ids(), [4, 6])
        legacy = trash.get_trashed_tasks()[1]
        self.assertEqual(legacy.task.column, 'inProgress')
        self.assertEqual(legacy.task.note_entries[0].notes_html, '<p>hi</p>')
        self.assertEqual(legacy.trashed_at, 0)

    def test_bad_nested_entry_skips_only_that_record(self) -> None:
        store = MemoryStore(data={TRASH_KEY: [
            {'id': 1, 'title': 'broken', 'deleted': True, 'noteEntries': ['plain text']},
            {'id': 2, 'title': 'good', 'deleted': True, 'trashedAt': 1000},
            {'id': 3, 'title': 'broken audit', 'deleted': True, 'actions': ['Created']},
        ]})
        self.assertEqual(Trash(store).ids(), [2])

    def test_saved_trash_not_a_list(self) -> None:
        trash = Trash(MemoryStore(data={TRASH_KEY: {'id': 1}}))
        self.assertEqual(trash.get_trash_count(), 0)


if __name__ == "__main__":
    unittest.main()
