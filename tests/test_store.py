import json
import threading

import pytest

from lifedash.errors import InvalidTableName, NotFound
from lifedash.markdown_sync import TaskMarkdownSync
from lifedash.store import JsonFileBackend, MemoryBackend, RecordStore

from conftest import StepClock


def test_create_assigns_id_timestamp_and_default_status():
    store = RecordStore(MemoryBackend(), clock=StepClock(1234))
    record = store.create_record('tasks', {'description': 'water plants', 'priority': 'high'})

    assert record == {
        'id': '1234',
        'created_at': 1234,
        'status': 'pending',
        'description': 'water plants',
        'priority': 'high',
    }
    assert store.read_table('tasks') == [record]


def test_create_keeps_supplied_status_but_not_id():
    store = RecordStore(MemoryBackend(), clock=StepClock(50))
    record = store.create_record('streams', {'status': 'planned', 'id': 'mine', 'created_at': 1})

    assert record['status'] == 'planned'
    assert record['id'] == '50'
    assert record['created_at'] == 50


def test_ids_in_same_millisecond_do_not_collide():
    store = RecordStore(MemoryBackend(), clock=StepClock(7))
    ids = [store.create_record('tasks', {'n': i})['id'] for i in range(5)]

    assert ids == ['7', '8', '9', '10', '11']


def test_concurrent_creates_produce_distinct_ids(tmp_path):
    store = RecordStore(JsonFileBackend(str(tmp_path)))
    count = 25
    barrier = threading.Barrier(count)

    def worker(n):
        barrier.wait()
        store.create_record('tasks', {'description': f'task {n}'})

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    records = store.read_table('tasks')
    assert len(records) == count
    assert len({r['id'] for r in records}) == count


def test_update_merges_patch_and_leaves_other_fields():
    store = RecordStore(MemoryBackend())
    created = store.create_record('tasks', {'description': 'a', 'priority': 'low'})

    updated = store.update_record('tasks', created['id'], {'status': 'completed', 'id': 'other'})

    assert updated['status'] == 'completed'
    assert updated['id'] == created['id']
    assert updated['priority'] == 'low'
    assert store.read_table('tasks') == [updated]


def test_update_missing_record_raises_not_found():
    store = RecordStore(MemoryBackend())
    with pytest.raises(NotFound):
        store.update_record('tasks', 'nope', {'status': 'completed'})


def test_delete_missing_record_is_a_no_op():
    store = RecordStore(MemoryBackend())
    kept = store.create_record('habits', {'title': 'run'})

    assert store.delete_record('habits', 'does-not-exist') is False
    assert store.read_table('habits') == [kept]


def test_delete_removes_record():
    store = RecordStore(MemoryBackend())
    record = store.create_record('habits', {'title': 'run'})

    assert store.delete_record('habits', record['id']) is True
    assert store.read_table('habits') == []


def test_listeners_receive_every_write():
    store = RecordStore(MemoryBackend())
    seen = []
    store.add_listener(lambda table, records: seen.append((table, len(records))))

    record = store.create_record('finances', {'amount': 3})
    store.update_record('finances', record['id'], {'amount': 4})
    store.delete_record('finances', record['id'])

    assert seen == [('finances', 1), ('finances', 1), ('finances', 0)]


def test_invalid_table_name_is_rejected():
    store = RecordStore(MemoryBackend())
    with pytest.raises(InvalidTableName):
        store.read_table('../etc/passwd')


# Missing or corrupt table files read as empty tables on purpose.

def test_missing_table_file_reads_as_empty(tmp_path):
    store = RecordStore(JsonFileBackend(str(tmp_path / 'nowhere')))
    assert store.read_table('tasks') == []


def test_corrupt_table_file_reads_as_empty(tmp_path):
    (tmp_path / 'tasks.json').write_text('{not json', encoding='utf-8')
    store = RecordStore(JsonFileBackend(str(tmp_path)))
    assert store.read_table('tasks') == []


def test_non_list_table_file_reads_as_empty(tmp_path):
    (tmp_path / 'tasks.json').write_text('{"id": "1"}', encoding='utf-8')
    store = RecordStore(JsonFileBackend(str(tmp_path)))
    assert store.read_table('tasks') == []


def test_file_backend_writes_pretty_json_list(tmp_path):
    store = RecordStore(JsonFileBackend(str(tmp_path)), clock=StepClock(99))
    store.create_record('finances', {'title': 'coffee', 'amount': 4.5})

    on_disk = json.loads((tmp_path / 'finances.json').read_text(encoding='utf-8'))
    assert on_disk == [{
        'id': '99', 'created_at': 99, 'status': 'pending', 'title': 'coffee', 'amount': 4.5,
    }]
    assert [p.name for p in tmp_path.iterdir()] == ['finances.json']


def test_write_table_replaces_records_and_notifies_listeners(tmp_path):
    doc = tmp_path / 'PROJECTS.md'
    doc.write_text('# Projects\n', encoding='utf-8')
    store = RecordStore(MemoryBackend())
    seen = []
    store.add_listener(lambda table, records: seen.append((table, len(records))))
    store.add_listener(TaskMarkdownSync(str(doc)))

    records = [{'id': '1', 'description': 'x', 'status': 'pending'}]
    store.write_table('tasks', records)

    assert store.read_table('tasks') == records
    assert seen == [('tasks', 1)]
    assert '- [ ] x' in doc.read_text(encoding='utf-8')
