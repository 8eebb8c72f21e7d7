"""Record store: schema-less tables persisted one JSON document per table.

Reads degrade to an empty table when the backing file is missing or corrupt,
so a damaged file looks like "no data" rather than an error. Writes replace the
whole table and surface ``OSError`` to the caller without rollback.
"""

import copy
import json
import logging
import os
import tempfile
import threading
import time

from .config import is_valid_table_name
from .errors import InvalidTableName, NotFound
from .logs import log_event

TASKS_TABLE = 'tasks'


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class MemoryBackend:
    def __init__(self, tables=None):
        self._tables = copy.deepcopy(tables) if tables else {}

    def load(self, name):
        return copy.deepcopy(self._tables.get(name, []))

    def save(self, name, records):
        self._tables[name] = copy.deepcopy(records)


class JsonFileBackend:
    def __init__(self, data_dir):
        self.data_dir = data_dir

    def table_path(self, name):
        return os.path.join(self.data_dir, f'{name}.json')

    def load(self, name):
        path = self.table_path(name)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            log_event(logging.WARNING, 'table_unreadable', table=name, error=exc)
            return []
        if not isinstance(data, list):
            log_event(logging.WARNING, 'table_not_a_list', table=name)
            return []
        return [r for r in data if isinstance(r, dict)]

    def save(self, name, records):
        os.makedirs(self.data_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f'.{name}.', suffix='.tmp', dir=self.data_dir)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.table_path(name))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

def now_ms():
    return int(time.time() * 1000)


class RecordStore:
    def __init__(self, backend, clock=now_ms):
        self.backend = backend
        self.clock = clock
        self._listeners = []
        self._locks = {}
        self._locks_guard = threading.Lock()

    def add_listener(self, listener):
        """Register ``listener(table, records)``, called after every table write."""
        self._listeners.append(listener)

    def _lock_for(self, name):
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock

    @staticmethod
    def _check_name(name):
        if not is_valid_table_name(name):
            raise InvalidTableName(name)

    def read_table(self, name):
        self._check_name(name)
        return self.backend.load(name)

    def write_table(self, name, records):
        self._check_name(name)
        with self._lock_for(name):
            self._write(name, records)

    def _write(self, name, records):
        self.backend.save(name, records)
        log_event(logging.DEBUG, 'table_written', table=name, count=len(records))
        for listener in self._listeners:
            listener(name, records)

    def _next_id(self, records):
        taken = {str(r.get('id')) for r in records}
        candidate = self.clock()
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def create_record(self, table, fields):
        self._check_name(table)
        with self._lock_for(table):
            records = self.backend.load(table)
            record = {
                'id': self._next_id(records),
                'created_at': self.clock(),
                'status': 'pending',
            }
            record.update({k: v for k, v in (fields or {}).items() if k not in ('id', 'created_at')})
            records.append(record)
            self._write(table, records)
        return record

    def update_record(self, table, record_id, patch):
        self._check_name(table)
        with self._lock_for(table):
            records = self.backend.load(table)
            for record in records:
                if record.get('id') == record_id:
                    record.update({k: v for k, v in (patch or {}).items() if k != 'id'})
                    self._write(table, records)
                    return record
        raise NotFound(table, record_id)

    def delete_record(self, table, record_id):
        self._check_name(table)
        with self._lock_for(table):
            records = self.backend.load(table)
            remaining = [r for r in records if r.get('id') != record_id]
            self._write(table, remaining)
        return len(remaining) != len(records)
