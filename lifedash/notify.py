"""Push channel: fan-out of store snapshots to connected SSE subscribers.

Subscribers that are not connected when an event is published miss it; a
reconnecting client gets a fresh snapshot as its first frame.
"""

import json
import logging
import queue
import threading

from .logs import log_event

SUBSCRIBER_QUEUE_SIZE = 100
HEARTBEAT_SECONDS = 15.0


class Broadcaster:
    def __init__(self, queue_size=SUBSCRIBER_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers = []
        self._lock = threading.Lock()

    def subscribe(self):
        client_queue = queue.Queue(maxsize=self.queue_size)
        with self._lock:
            self._subscribers.append(client_queue)
        log_event(logging.INFO, 'subscriber_connected', subscribers=len(self._subscribers))
        return client_queue

    def unsubscribe(self, client_queue):
        with self._lock:
            if client_queue in self._subscribers:
                self._subscribers.remove(client_queue)
        log_event(logging.INFO, 'subscriber_disconnected', subscribers=len(self._subscribers))

    @property
    def subscriber_count(self):
        with self._lock:
            return len(self._subscribers)

    def publish(self, event):
        with self._lock:
            subscribers = list(self._subscribers)
        for client_queue in subscribers:
            try:
                client_queue.put_nowait(event)
            except queue.Full:
                log_event(logging.WARNING, 'push_dropped', type=event.get('type'))
        return len(subscribers)


def snapshot(store, tables):
    event = {'type': 'sync_data'}
    for table in tables:
        event[table] = store.read_table(table)
    return event


def sse_frame(event):
    return f'data: {json.dumps(event)}\n\n'


def event_stream(broadcaster, initial_event, heartbeat=HEARTBEAT_SECONDS):
    """Yield SSE frames for one subscriber until the client goes away."""
    client_queue = broadcaster.subscribe()
    try:
        yield sse_frame(initial_event)
        while True:
            try:
                event = client_queue.get(timeout=heartbeat)
            except queue.Empty:
                event = {'type': 'heartbeat'}
            yield sse_frame(event)
    finally:
        broadcaster.unsubscribe(client_queue)
