"""Flask application: table CRUD, derived views, push channel and CLI proxy."""

import logging
import os
import shlex

from flask import Flask, Response, jsonify, request, send_from_directory, stream_with_context
from flask_cors import CORS

from . import readers
from .commands import AUTH_GUIDANCE, CommandRunner
from .config import load_config, workspace_path
from .errors import CommandError, InvalidTableName, NotFound
from .logs import log_event
from .markdown_sync import TaskMarkdownSync
from .notify import Broadcaster, event_stream, snapshot
from .store import JsonFileBackend, RecordStore

STREAMS_TABLE = 'streams'


def request_fields():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def build_store(config):
    store = RecordStore(JsonFileBackend(config['data_dir']))
    store.add_listener(TaskMarkdownSync(
        workspace_path(config, 'projects_file'),
        completed_limit=config['completed_task_limit']
    ))
    return store


def create_app(config=None, store=None, broadcaster=None, runner=None):
    config = config or load_config()
    store = store or build_store(config)
    broadcaster = broadcaster or Broadcaster()
    runner = runner or CommandRunner(
        config['cli_command'],
        cwd=config['workspace_dir'],
        timeout=config['cli_timeout_seconds']
    )

    app = Flask(__name__, static_folder=config['static_dir'], static_url_path='')
    CORS(app)
    app.config['DASHBOARD'] = config
    app.extensions['lifedash'] = {
        'store': store,
        'broadcaster': broadcaster,
        'runner': runner,
    }

    snapshot_tables = config['snapshot_tables']

    def publish_snapshot():
        event = snapshot(store, snapshot_tables)
        broadcaster.publish(event)
        return event

    def publish_on_write(table, records):
        if table in snapshot_tables:
            publish_snapshot()

    store.add_listener(publish_on_write)

    # -----------------------------------------------------------------------
    # Error mapping
    # -----------------------------------------------------------------------

    @app.errorhandler(InvalidTableName)
    def invalid_table(exc):
        return jsonify({'error': str(exc)}), 400

    @app.errorhandler(NotFound)
    def not_found(exc):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(OSError)
    def write_failed(exc):
        log_event(logging.ERROR, 'write_failed', error=exc)
        return jsonify({'error': str(exc)}), 500

    @app.errorhandler(CommandError)
    def command_failed(exc):
        body = {'error': str(exc)}
        if exc.is_authorization_failure:
            body['warning'] = AUTH_GUIDANCE
        return jsonify(body), 500

    # -----------------------------------------------------------------------
    # Generic table CRUD
    # -----------------------------------------------------------------------

    @app.route('/api/tables/<table>', methods=['GET'])
    def get_table(table):
        return jsonify({'data': store.read_table(table)})

    @app.route('/api/tables/<table>', methods=['POST'])
    def create_record(table):
        data = request_fields()
        record = store.create_record(table, data)
        return jsonify(record)

    @app.route('/api/tables/<table>/<record_id>', methods=['PATCH'])
    def update_record(table, record_id):
        data = request_fields()
        record = store.update_record(table, record_id, data)
        return jsonify(record)

    @app.route('/api/tables/<table>/<record_id>', methods=['DELETE'])
    def delete_record(table, record_id):
        store.delete_record(table, record_id)
        return jsonify({'success': True})

    @app.route('/api/tasks', methods=['GET'])
    def get_tasks():
        return jsonify(readers.task_views(store.read_table('tasks')))

    # -----------------------------------------------------------------------
    # Stream scheduler
    # -----------------------------------------------------------------------

    @app.route('/api/streams', methods=['GET'])
    def get_streams():
        return jsonify({'streams': readers.sort_streams(store.read_table(STREAMS_TABLE))})

    @app.route('/api/streams/upcoming', methods=['GET'])
    def get_upcoming_streams():
        return jsonify({'streams': readers.upcoming_streams(store.read_table(STREAMS_TABLE))})

    @app.route('/api/streams', methods=['POST'])
    def create_stream():
        data = request_fields()
        fields = {'status': 'planned'}
        fields.update(data)
        return jsonify(store.create_record(STREAMS_TABLE, fields))

    @app.route('/api/streams/<stream_id>', methods=['PATCH'])
    def update_stream(stream_id):
        data = request_fields()
        try:
            stream = store.update_record(STREAMS_TABLE, stream_id, data)
        except NotFound:
            return jsonify({'error': 'Stream not found'}), 404
        return jsonify(stream)

    @app.route('/api/streams/<stream_id>', methods=['DELETE'])
    def delete_stream(stream_id):
        store.delete_record(STREAMS_TABLE, stream_id)
        return jsonify({'success': True})

    # -----------------------------------------------------------------------
    # Markdown-derived views
    # -----------------------------------------------------------------------

    @app.route('/api/inventory', methods=['GET'])
    def get_inventory():
        return jsonify(readers.read_inventory(config))

    @app.route('/api/content/calendar', methods=['GET'])
    def get_content_calendar():
        return jsonify(readers.read_content_calendar(config))

    @app.route('/api/memory/all', methods=['GET'])
    def get_memory():
        return jsonify(readers.read_memory_sections(config))

    @app.route('/api/projects/detailed', methods=['GET'])
    def get_projects():
        return jsonify(readers.list_projects(config))

    @app.route('/api/journal', methods=['GET'])
    def get_journal():
        return jsonify(readers.list_journal(config))

    @app.route('/api/assets/library', methods=['GET'])
    def get_assets():
        return jsonify(readers.scan_assets(config))

    @app.route('/api/analytics', methods=['GET'])
    def get_analytics():
        return jsonify(readers.workspace_analytics(config, store))

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({
            'status': 'ok',
            'data_dir': config['data_dir'],
            'workspace_dir': config['workspace_dir'],
            'subscribers': broadcaster.subscriber_count,
        })

    # -----------------------------------------------------------------------
    # Push channel
    # -----------------------------------------------------------------------

    @app.route('/api/stream', methods=['GET'])
    def stream():
        initial = snapshot(store, snapshot_tables)
        return Response(
            stream_with_context(event_stream(broadcaster, initial)),
            mimetype='text/event-stream',
            headers={
                'Cache-Control': 'no-cache',
                'Connection': 'keep-alive',
                'X-Accel-Buffering': 'no'
            }
        )

    @app.route('/api/sync', methods=['POST'])
    def request_sync():
        return jsonify(publish_snapshot())

    # -----------------------------------------------------------------------
    # External CLI
    # -----------------------------------------------------------------------

    @app.route('/api/status', methods=['GET'])
    def cli_status():
        return jsonify({'status': runner.status()})

    @app.route('/api/subagents', methods=['GET'])
    def list_subagents():
        try:
            jobs = runner.list_jobs()
        except CommandError as exc:
            if exc.is_authorization_failure:
                return jsonify({
                    'subagents': [],
                    'warning': AUTH_GUIDANCE,
                    'error': 'Device token mismatch'
                })
            raise
        return jsonify({'subagents': jobs})

    @app.route('/api/subagents/spawn', methods=['POST'])
    def spawn_subagent():
        data = request_fields()
        task = (data.get('task') or '').strip()
        if not task:
            return jsonify({'error': 'task is required'}), 400
        return jsonify(runner.spawn_job(task, data.get('agentId')))

    @app.route('/api/subagents/kill', methods=['POST'])
    def kill_subagent():
        data = request_fields()
        target = (data.get('target') or '').strip()
        if not target:
            return jsonify({'error': 'target is required'}), 400
        return jsonify({'result': runner.kill_job(target)})

    @app.route('/api/commands', methods=['POST'])
    def run_command():
        data = request_fields()
        args = data.get('args')
        if isinstance(args, str):
            try:
                args = shlex.split(args)
            except ValueError as exc:
                return jsonify({'error': f'Invalid arguments: {exc}'}), 400
        if not isinstance(args, list) or not args:
            return jsonify({'error': 'args is required'}), 400

        event = {'type': 'command_result', 'args': args, 'result': None, 'error': None}
        try:
            event['result'] = runner.run(args)
        except CommandError as exc:
            event['error'] = str(exc)
            if exc.is_authorization_failure:
                event['warning'] = AUTH_GUIDANCE
        broadcaster.publish(event)
        return jsonify(event), (500 if event['error'] else 200)

    # -----------------------------------------------------------------------
    # Front-end
    # -----------------------------------------------------------------------

    @app.route('/')
    def index():
        return send_from_directory(app.static_folder, 'index.html')

    @app.errorhandler(404)
    def spa_fallback(exc):
        index_file = os.path.join(app.static_folder, 'index.html')
        if request.path.startswith('/api/') or not os.path.isfile(index_file):
            return jsonify({'error': 'Not found'}), 404
        return send_from_directory(app.static_folder, 'index.html')

    return app
