import json
import tempfile
import unittest
from pathlib import Path

from errors import PersistenceFailure
from models import Task
from storage import NEXT_ID_KEY, TASKS_KEY, JsonFileStore, MemoryStore, Storage, migrate_record


class TestJsonFileStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name) / 'data'
        self.store = JsonFileStore(self.dir)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_key_is_none(self) -> None:
        self.assertIsNone(self.store.get('nothing'))

    def test_set_creates_directory_and_file(self) -> None:
        self.store.set('kanbanNotes', [{'id': 1}])
        path = self.dir / 'kanbanNotes.json'
        self.assertTrue(path.exists())
        self.assertEqual(json.loads(path.read_text()), [{'id': 1}])
        self.assertEqual(self.store.get('kanbanNotes'), [{'id': 1}])
        self.assertEqual([p.name for p in self.dir.iterdir()], ['kanbanNotes.json'])

    def test_corrupt_file_reads_as_none(self) -> None:
        self.dir.mkdir(parents=True)
        (self.dir / 'broken.json').write_text('{not json')
        self.assertIsNone(self.store.get('broken'))

    def test_unserializable_value_raises(self) -> None:
        with self.assertRaises(PersistenceFailure) as ctx:
            self.store.set('bad', {'x': object()})
        self.assertEqual(ctx.exception.key, 'bad')
        self.assertFalse(any(self.dir.glob('*.tmp')))


class TestMemoryStore(unittest.TestCase):
    def test_values_are_copies(self) -> None:
        store = MemoryStore()
        value = {'a': [1]}
        store.set('k', value)
        value['a'].append(2)
        self.assertEqual(store.get('k'), {'a': [1]})

    def test_quota(self) -> None:
        store = MemoryStore(quota=20)
        store.set('a', 'x' * 10)
        with self.assertRaises(PersistenceFailure):
            store.set('b', 'y' * 10)
        store.set('a', 'z')
        store.set('b', 'y' * 10)
        self.assertEqual(sorted(store.keys()), ['a', 'b'])


class TestStorage(unittest.TestCase):
    def test_empty_store(self) -> None:
        storage = Storage(MemoryStore())
        self.assertEqual(storage.load_tasks(), [])
        self.assertEqual(storage.load_next_id(), 1)

    def test_save_and_load(self) -> None:
        store = MemoryStore()
        storage = Storage(store)
        tasks = [Task(id=3, title='a', column='done', priority='low')]
        storage.save_tasks([t.to_dict() for t in tasks], 4)
        self.assertEqual(storage.load_tasks(), tasks)
        self.assertEqual(storage.load_next_id(), 4)
        self.assertEqual(store.get(NEXT_ID_KEY), 4)

    def test_bad_records_are_skipped(self) -> None:
        store = MemoryStore(data={TASKS_KEY: [
            {'id': 1, 'title': 'fine'},
            {'id': 2, 'title': 'bad column', 'column': 'someday'},
            42,
            {'id': 3, 'title': '   '},
        ]})
        self.assertEqual([t.id for t in Storage(store).load_tasks()], [1])

    def test_tags_over_cap_are_trimmed_on_load(self) -> None:
        store = MemoryStore(data={TASKS_KEY: [{'id': 1, 'title': 'old', 'tags': list('abcdefg')}]})
        with self.assertLogs('models', level='WARNING'):
            tasks = Storage(store).load_tasks()
        self.assertEqual(tasks[0].tags, list('abcde'))

    def test_bad_note_or_audit_entry_skips_only_that_record(self) -> None:
        store = MemoryStore(data={TASKS_KEY: [
            {'id': 1, 'title': 'plain note', 'noteEntries': ['plain text']},
            {'id': 2, 'title': 'good'},
            {'id': 3, 'title': 'bad audit', 'actions': [7]},
            {'id': 4, 'title': 'bad images', 'noteEntries': [{'notesHTML': 'x', 'images': 5}]},
            {'id': 5, 'title': 'entries not a list', 'noteEntries': 'text'},
        ]})
        self.assertEqual([t.id for t in Storage(store).load_tasks()], [2])

    def test_non_list_payload(self) -> None:
        store = MemoryStore(data={TASKS_KEY: {'id': 1}, NEXT_ID_KEY: 'seven'})
        storage = Storage(store)
        self.assertEqual(storage.load_tasks(), [])
        self.assertEqual(storage.load_next_id(), 1)


class TestMigrateRecord(unittest.TestCase):
    def test_single_note_becomes_entry(self) -> None:
        record = migrate_record({
            'id': 1.0, 'title': 'x', 'column': 'on-hold', 'notes': '<p>n</p>', 'images': ['i1'],
            'actions': [{'action': 'Created', 'timestamp': '2024-01-01T00:00:00', 'type': 'created'}],
        })
        self.assertEqual(record['id'], 1)
        self.assertEqual(record['column'], 'onHold')
        self.assertNotIn('notes', record)
        self.assertEqual(record['noteEntries'], [
            {'timestamp': '2024-01-01T00:00:00', 'notesHTML': '<p>n</p>', 'images': ['i1']},
        ])

    def test_existing_entries_win(self) -> None:
        entries = [{'timestamp': 't', 'notesHTML': 'kept', 'images': []}]
        record = migrate_record({'id': '12', 'title': 'x', 'notes': 'old', 'noteEntries': entries})
        self.assertEqual(record['id'], 12)
        self.assertEqual(record['noteEntries'], entries)
        self.assertNotIn('notes', record)

    def test_input_is_not_modified(self) -> None:
        raw = {'id': 1, 'title': 'x', 'column': 'doing'}
        migrate_record(raw)
        self.assertEqual(raw, {'id': 1, 'title': 'x', 'column': 'doing'})


if __name__ == "__main__":
    unittest.main()
